"""Métricas de queries usando OpenTelemetry."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Protocol

from opentelemetry import metrics as otel_metrics

logger = logging.getLogger(__name__)


class QueryMetrics(Protocol):
    """Protocol para coletores de métricas."""

    def record_hit(self, key: str) -> None:
        """Registra cache hit."""
        ...

    def record_miss(self, key: str) -> None:
        """Registra cache miss."""
        ...

    def record_dedup(self, key: str) -> None:
        """Registra chamada coalescida numa operação pendente."""
        ...

    def record_fetch(self, key: str, latency: float) -> None:
        """Registra tentativa de busca concluída com sucesso."""
        ...

    def record_error(self, key: str, error: Exception) -> None:
        """Registra tentativa que falhou."""
        ...

    def record_retry(self, key: str, attempt: int) -> None:
        """Registra agendamento de nova tentativa."""
        ...


class NoOpMetrics:
    """Coletor de métricas que não faz nada (default)."""

    def record_hit(self, key: str) -> None:
        pass

    def record_miss(self, key: str) -> None:
        pass

    def record_dedup(self, key: str) -> None:
        pass

    def record_fetch(self, key: str, latency: float) -> None:
        pass

    def record_error(self, key: str, error: Exception) -> None:
        pass

    def record_retry(self, key: str, attempt: int) -> None:
        pass


@dataclass
class KeyStats:
    """Estatísticas para uma chave específica."""

    hits: int = 0
    misses: int = 0
    deduplicated: int = 0
    fetches: int = 0
    errors: int = 0
    retries: int = 0
    total_fetch_latency: float = 0.0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0

    @property
    def avg_fetch_latency_ms(self) -> float:
        return (self.total_fetch_latency / self.fetches * 1000) if self.fetches > 0 else 0.0


@dataclass
class QueryStats:
    """Estatísticas agregadas de todas as queries."""

    hits: int = 0
    misses: int = 0
    deduplicated: int = 0
    fetches: int = 0
    errors: int = 0
    retries: int = 0
    fetch_latencies: list[float] = field(default_factory=list)

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0

    @property
    def dedup_ratio(self) -> float:
        """Fração dos misses atendidos por uma operação já pendente."""
        return self.deduplicated / self.misses if self.misses > 0 else 0.0

    @property
    def avg_fetch_latency_ms(self) -> float:
        if not self.fetch_latencies:
            return 0.0
        return sum(self.fetch_latencies) / len(self.fetch_latencies) * 1000


class OpenTelemetryMetrics:
    """Coletor de métricas usando OpenTelemetry.

    Métricas exportadas:
    - query.hits (counter): Número de cache hits
    - query.misses (counter): Número de cache misses
    - query.deduplicated (counter): Chamadas coalescidas
    - query.fetches (counter): Tentativas concluídas com sucesso
    - query.errors (counter): Tentativas que falharam
    - query.retries (counter): Retries agendados
    - query.fetch.latency (histogram): Latência das tentativas em segundos

    Example:
        ```python
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry import metrics

        metrics.set_meter_provider(MeterProvider())

        orchestrator = FetchOrchestrator(client, metrics=OpenTelemetryMetrics())
        ```
    """

    def __init__(self, meter_name: str = "query_cache") -> None:
        """Inicializa métricas OpenTelemetry.

        Args:
            meter_name: Nome do meter para agrupar métricas
        """
        meter = otel_metrics.get_meter(meter_name)

        # Counters
        self._hits_counter = meter.create_counter(
            "query.hits",
            description="Número de cache hits",
            unit="1",
        )
        self._misses_counter = meter.create_counter(
            "query.misses",
            description="Número de cache misses",
            unit="1",
        )
        self._dedup_counter = meter.create_counter(
            "query.deduplicated",
            description="Número de chamadas coalescidas em operação pendente",
            unit="1",
        )
        self._fetches_counter = meter.create_counter(
            "query.fetches",
            description="Número de tentativas concluídas com sucesso",
            unit="1",
        )
        self._errors_counter = meter.create_counter(
            "query.errors",
            description="Número de tentativas que falharam",
            unit="1",
        )
        self._retries_counter = meter.create_counter(
            "query.retries",
            description="Número de retries agendados",
            unit="1",
        )

        # Histograms
        self._latency_histogram = meter.create_histogram(
            "query.fetch.latency",
            description="Latência das tentativas de busca",
            unit="s",
        )

    def record_hit(self, key: str) -> None:
        """Registra cache hit."""
        self._hits_counter.add(1, {"key": key})

    def record_miss(self, key: str) -> None:
        """Registra cache miss."""
        self._misses_counter.add(1, {"key": key})

    def record_dedup(self, key: str) -> None:
        """Registra chamada coalescida."""
        self._dedup_counter.add(1, {"key": key})

    def record_fetch(self, key: str, latency: float) -> None:
        """Registra tentativa bem-sucedida."""
        self._fetches_counter.add(1, {"key": key})
        self._latency_histogram.record(latency, {"key": key})

    def record_error(self, key: str, error: Exception) -> None:
        """Registra tentativa que falhou."""
        self._errors_counter.add(1, {"key": key, "error_type": type(error).__name__})

    def record_retry(self, key: str, attempt: int) -> None:
        """Registra retry agendado."""
        self._retries_counter.add(1, {"key": key, "attempt": attempt})


class InMemoryMetrics:
    """Coletor de métricas em memória com estatísticas por chave.

    Útil para desenvolvimento, testes e análise detalhada.

    Attributes:
        max_samples: Máximo de amostras de latência mantidas
    """

    def __init__(self, max_samples: int = 1000) -> None:
        """Inicializa coletor de métricas.

        Args:
            max_samples: Máximo de amostras de latência a manter
        """
        self._max_samples = max_samples
        self._lock = Lock()
        self._overall = QueryStats()
        self._by_key: dict[str, KeyStats] = defaultdict(KeyStats)

    def record_hit(self, key: str) -> None:
        """Registra cache hit."""
        with self._lock:
            self._overall.hits += 1
            self._by_key[key].hits += 1

    def record_miss(self, key: str) -> None:
        """Registra cache miss."""
        with self._lock:
            self._overall.misses += 1
            self._by_key[key].misses += 1

    def record_dedup(self, key: str) -> None:
        """Registra chamada coalescida."""
        with self._lock:
            self._overall.deduplicated += 1
            self._by_key[key].deduplicated += 1

    def record_fetch(self, key: str, latency: float) -> None:
        """Registra tentativa bem-sucedida."""
        with self._lock:
            self._overall.fetches += 1
            self._overall.fetch_latencies.append(latency)
            self._trim_samples(self._overall.fetch_latencies)

            self._by_key[key].fetches += 1
            self._by_key[key].total_fetch_latency += latency

    def record_error(self, key: str, error: Exception) -> None:
        """Registra tentativa que falhou."""
        with self._lock:
            self._overall.errors += 1
            self._by_key[key].errors += 1

    def record_retry(self, key: str, attempt: int) -> None:
        """Registra retry agendado."""
        with self._lock:
            self._overall.retries += 1
            self._by_key[key].retries += 1

    def _trim_samples(self, samples: list[Any]) -> None:
        """Remove amostras antigas se exceder limite."""
        if len(samples) > self._max_samples:
            del samples[: len(samples) - self._max_samples]

    def get_stats(self) -> QueryStats:
        """Retorna estatísticas agregadas."""
        with self._lock:
            return QueryStats(
                hits=self._overall.hits,
                misses=self._overall.misses,
                deduplicated=self._overall.deduplicated,
                fetches=self._overall.fetches,
                errors=self._overall.errors,
                retries=self._overall.retries,
                fetch_latencies=self._overall.fetch_latencies.copy(),
            )

    def get_key_stats(self, key: str) -> KeyStats | None:
        """Retorna estatísticas de uma chave específica."""
        with self._lock:
            if key not in self._by_key:
                return None
            return self._copy_key_stats(self._by_key[key])

    def get_all_key_stats(self) -> dict[str, KeyStats]:
        """Retorna estatísticas de todas as chaves."""
        with self._lock:
            return {key: self._copy_key_stats(stats) for key, stats in self._by_key.items()}

    def reset(self) -> None:
        """Reseta todas as estatísticas."""
        with self._lock:
            self._overall = QueryStats()
            self._by_key.clear()

    @staticmethod
    def _copy_key_stats(stats: KeyStats) -> KeyStats:
        return KeyStats(
            hits=stats.hits,
            misses=stats.misses,
            deduplicated=stats.deduplicated,
            fetches=stats.fetches,
            errors=stats.errors,
            retries=stats.retries,
            total_fetch_latency=stats.total_fetch_latency,
        )
