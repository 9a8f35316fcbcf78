"""Dono dos stores compartilhados por todas as queries."""

import logging
import time
from collections.abc import Callable

from .cache_store import CacheStore
from .pending_store import PendingStore
from .state import QueryOptions

logger = logging.getLogger(__name__)


class QueryClient:
    """Agrupa o CacheStore e o PendingStore de uma aplicação.

    Deve ser criado uma única vez e passado explicitamente para cada
    orquestrador/observer. Instâncias diferentes são totalmente isoladas,
    o que permite vários clientes independentes no mesmo processo (e
    em testes).

    Attributes:
        cache: Store de valores resolvidos
        pending: Store de operações em andamento
        default_options: Opções usadas quando a query não informa as suas

    Example:
        ```python
        client = QueryClient()
        orchestrator = FetchOrchestrator(client)

        state = await orchestrator.run("users:1", fetch_user)
        ```
    """

    def __init__(
        self,
        cache: CacheStore | None = None,
        pending: PendingStore | None = None,
        default_options: QueryOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Inicializa o cliente.

        Args:
            cache: CacheStore customizado (default: novo store com ``clock``)
            pending: PendingStore customizado (default: novo store com ``clock``)
            default_options: Opções padrão (default: QueryOptions())
            clock: Fonte de tempo usada pelos stores criados aqui
        """
        self._cache = cache if cache is not None else CacheStore(clock=clock)
        self._pending = pending if pending is not None else PendingStore(clock=clock)
        self._default_options = default_options or QueryOptions()

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def pending(self) -> PendingStore:
        return self._pending

    @property
    def default_options(self) -> QueryOptions:
        return self._default_options

    def clear_all(self) -> None:
        """Limpa os dois stores (operações pendentes não são canceladas)."""
        cached = self._cache.clear()
        pending = self._pending.clear()
        logger.debug(f"QueryClient limpo: {cached} entradas de cache, {pending} pendentes")
