"""Sessão de observação de uma query (consumidor)."""

import asyncio
import logging
from collections.abc import Callable

from .mutation import MutationApplier, ValueOrUpdater
from .orchestrator import FetchOrchestrator
from .state import Producer, QueryOptions, QueryState, StateHolder, StateListener
from .validators import validate_key

logger = logging.getLogger(__name__)


class QueryObserver:
    """Liga uma chave e um producer a um fluxo de QueryState.

    Equivalente, fora de qualquer framework de UI, a um hook de busca:
    expõe o estado corrente, notifica listeners a cada emissão e oferece
    ``refetch`` e ``mutate``.

    Example:
        ```python
        client = QueryClient()
        orchestrator = FetchOrchestrator(client)

        observer = QueryObserver(orchestrator, "people:1", http_producer(url))
        observer.subscribe(print)
        observer.start()

        await observer.refetch()
        observer.mutate(lambda person: {**person, "name": "Luke"})
        ```
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        key: str,
        producer: Producer,
        options: QueryOptions | None = None,
    ) -> None:
        """Inicializa o observer.

        Args:
            orchestrator: Orquestrador ligado ao QueryClient compartilhado
            key: Chave da query
            producer: Função que produz o valor
            options: Opções da query (default: opções do client)

        Raises:
            QueryKeyError: Se a chave for vazia
        """
        validate_key(key)
        self._orchestrator = orchestrator
        self._key = key
        self._producer = producer
        self._options = options or orchestrator.client.default_options
        self._mutations = MutationApplier(orchestrator.client)
        self._holder = StateHolder()
        self._task: asyncio.Task[QueryState] | None = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def options(self) -> QueryOptions:
        return self._options

    @property
    def state(self) -> QueryState:
        return self._holder.state

    @property
    def closed(self) -> bool:
        return self._holder.closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Inscreve listener para receber cada snapshot emitido."""
        return self._holder.subscribe(listener)

    def start(self) -> "asyncio.Task[QueryState] | None":
        """Inicia a busca automática em background.

        Precisa de um event loop rodando. Erros levantados por ``on_error``
        ou por listeners ficam na task retornada e também são logados;
        aguarde a task para recebê-los.

        Returns:
            Task da busca, ou None se ``enabled`` for False
        """
        if not self._options.enabled:
            logger.debug(f"Query desabilitada, não iniciando: {self._key}")
            return None

        self._task = asyncio.get_running_loop().create_task(self.fetch())
        self._task.add_done_callback(self._log_task_error)
        return self._task

    def _log_task_error(self, task: "asyncio.Task[QueryState]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Busca em background falhou para {self._key}: {error!r}")

    async def fetch(self) -> QueryState:
        """Executa o fluxo completo uma vez e aguarda o resultado."""
        return await self._orchestrator.run(self._key, self._producer, self._options, self._holder)

    async def refetch(self) -> QueryState:
        """Força nova busca, ignorando a entrada de cache atual."""
        return await self._orchestrator.refetch(self._key, self._producer, self._options, self._holder)

    def mutate(self, value_or_updater: ValueOrUpdater) -> QueryState:
        """Aplica atualização otimista no cache e no estado visível.

        Args:
            value_or_updater: Novo valor ou função ``dado atual -> novo valor``

        Returns:
            Estado após a mutação
        """
        new_value = self._mutations.mutate(
            self._key,
            value_or_updater,
            self._holder.state.data,
            self._options.cache_time,
        )
        self._holder.update(data=new_value)
        return self._holder.state

    def close(self) -> None:
        """Para de observar. A busca em andamento, se houver, não é cancelada."""
        self._holder.close()
