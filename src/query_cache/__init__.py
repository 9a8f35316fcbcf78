"""query-cache: Cache de requisições assíncronas no lado do cliente.

Serve resultados do cache enquanto válidos, coalesce chamadas concorrentes
para a mesma chave numa única operação, refaz operações que falharam um
número limitado de vezes e aceita atualizações otimistas locais.

Uso básico:
    ```python
    from query_cache import FetchOrchestrator, QueryClient, QueryObserver, QueryOptions, http_producer

    client = QueryClient()
    orchestrator = FetchOrchestrator(client)

    observer = QueryObserver(
        orchestrator,
        "people:1",
        http_producer("https://www.swapi.tech/api/people/1"),
        QueryOptions(deduping_interval=5.0, retry_count=2, retry_delay=1.0),
    )
    observer.subscribe(lambda state: print(state))
    await observer.fetch()

    # Atualização otimista
    observer.mutate(lambda person: {**person, "name": "Luke"})

    # Ignora o cache e busca de novo
    await observer.refetch()
    ```

Com métricas OpenTelemetry:
    ```python
    from query_cache import FetchOrchestrator, OpenTelemetryMetrics

    orchestrator = FetchOrchestrator(client, metrics=OpenTelemetryMetrics())
    ```
"""

__version__ = "0.1.0"

# Stores
from .cache_store import CacheEntry, CacheStore
from .client import QueryClient

# Decodificação
from .codecs import Decoder, JsonDecoder, MsgPackDecoder, decoder_for_content_type

# Configuração
from .config import QueryConfig

# Exceções
from .exceptions import (
    ConsumerCallbackError,
    ParseError,
    QueryError,
    QueryKeyError,
    TransportError,
    ValidationError,
)

# Métricas
from .metrics import (
    InMemoryMetrics,
    KeyStats,
    NoOpMetrics,
    OpenTelemetryMetrics,
    QueryMetrics,
    QueryStats,
)
from .mutation import MutationApplier
from .observer import QueryObserver

# Orquestração
from .orchestrator import FetchOrchestrator
from .pending_store import PendingEntry, PendingStore

# Producers HTTP
from .producers import HttpFetcher, http_producer
from .state import INITIAL_STATE, QueryOptions, QueryState, StateHolder

__all__ = [
    # Orquestração
    "FetchOrchestrator",
    "MutationApplier",
    "QueryObserver",
    # Stores
    "QueryClient",
    "CacheStore",
    "CacheEntry",
    "PendingStore",
    "PendingEntry",
    # Estado e opções
    "QueryState",
    "QueryOptions",
    "StateHolder",
    "INITIAL_STATE",
    "QueryConfig",
    # Producers HTTP
    "HttpFetcher",
    "http_producer",
    "Decoder",
    "JsonDecoder",
    "MsgPackDecoder",
    "decoder_for_content_type",
    # Métricas
    "QueryMetrics",
    "QueryStats",
    "KeyStats",
    "NoOpMetrics",
    "InMemoryMetrics",
    "OpenTelemetryMetrics",
    # Exceções
    "QueryError",
    "TransportError",
    "ParseError",
    "QueryKeyError",
    "ConsumerCallbackError",
    "ValidationError",
]
