"""Tipos de estado e opções compartilhados pelo orquestrador."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from .constants import (
    DEFAULT_CACHE_TIME,
    DEFAULT_DEDUPING_INTERVAL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)
from .validators import validate_query_options

Producer = Callable[[], Awaitable[Any]]
ErrorCallback = Callable[[Exception], Any]


@dataclass(frozen=True)
class QueryState:
    """Snapshot do estado de uma query observada.

    Attributes:
        data: Último valor conhecido (None se ainda não há)
        error: Último erro observado (None após sucesso)
        is_loading: True enquanto a primeira busca está em andamento
        is_validating: True quando o valor veio do cache
    """

    data: Any = None
    error: Exception | None = None
    is_loading: bool = True
    is_validating: bool = False

    def evolve(self, **changes: Any) -> "QueryState":
        """Retorna cópia com os campos alterados."""
        return replace(self, **changes)


INITIAL_STATE = QueryState()


@dataclass(frozen=True)
class QueryOptions:
    """Opções por query. Todas as durações em segundos.

    Attributes:
        cache_time: TTL das entradas no CacheStore
        deduping_interval: TTL das entradas no PendingStore
        retry_count: Máximo de retries após a primeira tentativa
        retry_delay: Atraso fixo entre tentativas
        enabled: Se False, o observer não inicia automaticamente
        on_error: Callback chamado uma vez por tentativa que falhou
    """

    cache_time: float = DEFAULT_CACHE_TIME
    deduping_interval: float = DEFAULT_DEDUPING_INTERVAL
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    enabled: bool = True
    on_error: ErrorCallback | None = None

    def __post_init__(self) -> None:
        validate_query_options(
            cache_time=self.cache_time,
            deduping_interval=self.deduping_interval,
            retry_count=self.retry_count,
            retry_delay=self.retry_delay,
            on_error=self.on_error,
        )

    def evolve(self, **changes: Any) -> "QueryOptions":
        """Retorna cópia validada com os campos alterados."""
        return replace(self, **changes)


StateListener = Callable[[QueryState], Any]


class StateHolder:
    """Estado corrente de uma sessão de observação.

    Cada emissão substitui o snapshot e notifica os listeners na ordem
    de inscrição. Depois de ``close()`` as emissões viram no-op: a
    cadeia de busca continua rodando, mas ninguém mais é notificado.
    Erros levantados por listeners propagam para quem emitiu.
    """

    def __init__(self, initial: QueryState = INITIAL_STATE) -> None:
        self._state = initial
        self._listeners: list[StateListener] = []
        self._closed = False

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, state: QueryState) -> None:
        """Publica novo snapshot."""
        if self._closed:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def update(self, **changes: Any) -> None:
        """Publica o snapshot atual com os campos alterados."""
        self.emit(self._state.evolve(**changes))

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Inscreve listener.

        Returns:
            Função que cancela a inscrição
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Encerra a sessão; emissões futuras são ignoradas."""
        self._closed = True
        self._listeners.clear()
