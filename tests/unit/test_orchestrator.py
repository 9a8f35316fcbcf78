"""Testes para o FetchOrchestrator."""

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest

from query_cache import (
    ConsumerCallbackError,
    FetchOrchestrator,
    InMemoryMetrics,
    ParseError,
    QueryClient,
    QueryKeyError,
    QueryOptions,
    QueryState,
    StateHolder,
    TransportError,
)


class FlakyProducer:
    """Producer que falha nas primeiras N chamadas."""

    def __init__(self, failures: int, value: Any = "value") -> None:
        self.failures = failures
        self.value = value
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            raise TransportError(f"Error fetching data: attempt {self.calls}", status_code=503)
        return f"{self.value}-{self.calls}"


class GatedProducer:
    """Producer que só resolve quando o gate é liberado."""

    def __init__(self, value: Any = "value", error: Exception | None = None) -> None:
        self.gate = asyncio.Event()
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.value


class TestCacheCheck:
    """Testes para o caminho de cache hit."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_producer(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """Cache hit não deve disparar busca."""
        client.cache.set("k", "cached", ttl=300)
        producer = FlakyProducer(failures=0)

        state = await orchestrator.run("k", producer)

        assert producer.calls == 0
        assert state == QueryState(data="cached", error=None, is_loading=False, is_validating=True)

    @pytest.mark.asyncio
    async def test_cache_hit_keeps_validating_flag(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """is_validating nunca volta a False no caminho de cache hit."""
        client.cache.set("k", "cached", ttl=300)
        holder = StateHolder()
        emitted: list[QueryState] = []
        holder.subscribe(emitted.append)

        await orchestrator.run("k", FlakyProducer(failures=0), holder=holder)
        await asyncio.sleep(0)

        assert len(emitted) == 1
        assert holder.state.is_validating is True

    @pytest.mark.asyncio
    async def test_cached_falsy_value_is_a_hit(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """Valores falsy em cache contam como hit."""
        client.cache.set("k", 0, ttl=300)
        producer = FlakyProducer(failures=0)

        state = await orchestrator.run("k", producer)

        assert producer.calls == 0
        assert state.data == 0

    @pytest.mark.asyncio
    async def test_expired_cache_fetches_again(self, orchestrator: FetchOrchestrator, client: QueryClient, clock) -> None:
        """Entrada expirada deve levar a nova busca."""
        client.cache.set("k", "stale", ttl=1.0)
        clock.advance(1.5)
        producer = FlakyProducer(failures=0)

        state = await orchestrator.run("k", producer)

        assert producer.calls == 1
        assert state.data == "value-1"


class TestFreshFetch:
    """Testes para a busca com retry."""

    @pytest.mark.asyncio
    async def test_success_writes_cache(self, orchestrator: FetchOrchestrator, client: QueryClient, clock) -> None:
        """Sucesso deve gravar no cache com cache_time."""
        options = QueryOptions(cache_time=60.0)

        state = await orchestrator.run("k", FlakyProducer(failures=0), options)

        entry = client.cache.get_entry("k")
        assert entry is not None
        assert entry.data == "value-1"
        assert entry.expires_at == clock.now + 60.0
        assert state == QueryState(data="value-1", error=None, is_loading=False, is_validating=False)

    @pytest.mark.asyncio
    async def test_emits_loading_then_result(self, orchestrator: FetchOrchestrator) -> None:
        """Deve emitir loading e depois o resultado."""
        holder = StateHolder()
        emitted: list[QueryState] = []
        holder.subscribe(emitted.append)

        await orchestrator.run("k", FlakyProducer(failures=0), holder=holder)

        assert [s.is_loading for s in emitted] == [True, False]
        assert emitted[-1].data == "value-1"

    @pytest.mark.asyncio
    async def test_retries_until_success(self, orchestrator: FetchOrchestrator, sleeps: list[float]) -> None:
        """Falha nas tentativas 0 e 1, sucesso na 2: três chamadas."""
        producer = FlakyProducer(failures=2)
        on_error = MagicMock()
        options = QueryOptions(retry_count=2, retry_delay=1.0, on_error=on_error)
        holder = StateHolder()
        emitted: list[QueryState] = []
        holder.subscribe(emitted.append)

        state = await orchestrator.run("k", producer, options, holder)

        assert producer.calls == 3
        assert state.data == "value-3"
        assert state.error is None
        assert sleeps == [1.0, 1.0]
        assert on_error.call_count == 2
        # loading + uma emissão por resultado de tentativa
        assert len(emitted) == 4

    @pytest.mark.asyncio
    async def test_exhausted_retries_keep_last_error(self, orchestrator: FetchOrchestrator, sleeps: list[float]) -> None:
        """Sempre falhando com retry_count=1: duas chamadas, erro final da última."""
        producer = FlakyProducer(failures=10)
        options = QueryOptions(retry_count=1)

        state = await orchestrator.run("k", producer, options)

        assert producer.calls == 2
        assert isinstance(state.error, TransportError)
        assert str(state.error) == "Error fetching data: attempt 2"
        assert state.is_loading is False
        assert state.is_validating is False
        assert sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self, orchestrator: FetchOrchestrator, sleeps: list[float]) -> None:
        """retry_count=0: uma única tentativa, sem espera."""
        producer = FlakyProducer(failures=1)

        state = await orchestrator.run("k", producer, QueryOptions(retry_count=0))

        assert producer.calls == 1
        assert state.error is not None
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_error_keeps_previous_data(self, orchestrator: FetchOrchestrator) -> None:
        """Estado de erro mantém o dado anterior."""
        holder = StateHolder(QueryState(data="previous", is_loading=False))

        state = await orchestrator.run("k", FlakyProducer(failures=1), QueryOptions(retry_count=0), holder)

        assert state.data == "previous"
        assert isinstance(state.error, TransportError)

    @pytest.mark.asyncio
    async def test_failure_does_not_write_cache(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """Falhas não devem gravar no cache."""
        await orchestrator.run("k", FlakyProducer(failures=1), QueryOptions(retry_count=0))

        assert client.cache.get("k") is None

    @pytest.mark.asyncio
    async def test_pending_removed_after_each_attempt(self, client: QueryClient) -> None:
        """A entrada pendente some entre tentativas e ao final."""
        observed: list[bool] = []

        async def recording_sleep(delay: float) -> None:
            observed.append(client.pending.has("k"))

        orchestrator = FetchOrchestrator(client, sleep=recording_sleep)

        await orchestrator.run("k", FlakyProducer(failures=2), QueryOptions(retry_count=2))

        assert observed == [False, False]
        assert client.pending.has("k") is False

    @pytest.mark.asyncio
    async def test_pending_registered_during_attempt(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """A operação fica registrada enquanto está em andamento."""
        producer = GatedProducer()
        task = asyncio.create_task(orchestrator.run("k", producer))
        await asyncio.sleep(0)

        assert client.pending.has("k") is True

        producer.gate.set()
        await task
        assert client.pending.has("k") is False

    @pytest.mark.asyncio
    async def test_parse_error_is_converted_to_state(self, orchestrator: FetchOrchestrator) -> None:
        """ParseError também vira estado de erro."""

        async def producer() -> Any:
            raise ParseError("invalid body")

        state = await orchestrator.run("k", producer, QueryOptions(retry_count=0))

        assert isinstance(state.error, ParseError)

    @pytest.mark.asyncio
    async def test_on_error_exception_propagates(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """Erro no callback não é capturado e interrompe o retry."""
        producer = FlakyProducer(failures=10)

        def on_error(error: Exception) -> None:
            raise ConsumerCallbackError("callback failed")

        with pytest.raises(ConsumerCallbackError, match="callback failed"):
            await orchestrator.run("k", producer, QueryOptions(retry_count=2, on_error=on_error))

        assert producer.calls == 1
        assert client.pending.has("k") is False

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, orchestrator: FetchOrchestrator) -> None:
        """Chave vazia deve ser rejeitada."""
        with pytest.raises(QueryKeyError):
            await orchestrator.run("", FlakyProducer(failures=0))

    @pytest.mark.asyncio
    async def test_uses_client_default_options(self, clock, sleeps: list[float]) -> None:
        """Sem opções explícitas, usa as do client."""
        client = QueryClient(clock=clock, default_options=QueryOptions(retry_count=0))

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        orchestrator = FetchOrchestrator(client, sleep=fake_sleep)
        producer = FlakyProducer(failures=10)

        await orchestrator.run("k", producer)

        assert producer.calls == 1


class TestCoalescing:
    """Testes para coalescing de chamadas concorrentes."""

    @pytest.mark.asyncio
    async def test_concurrent_runs_share_operation(self, orchestrator: FetchOrchestrator, clock) -> None:
        """Runs em t=0 e t=0.5 compartilham a mesma operação."""
        producer = GatedProducer(value="shared")
        options = QueryOptions(deduping_interval=2.0)

        first = asyncio.create_task(orchestrator.run("k", producer, options))
        await asyncio.sleep(0)
        clock.advance(0.5)
        second = asyncio.create_task(orchestrator.run("k", producer, options))
        await asyncio.sleep(0)

        clock.advance(0.3)
        producer.gate.set()
        results = await asyncio.gather(first, second)

        assert producer.calls == 1
        assert [r.data for r in results] == ["shared", "shared"]
        assert all(r.error is None and not r.is_loading for r in results)

    @pytest.mark.asyncio
    async def test_waiter_receives_shared_failure(self, orchestrator: FetchOrchestrator) -> None:
        """Falha compartilhada: waiter mantém dado anterior e chama on_error."""
        producer = GatedProducer(error=TransportError("boom", status_code=500))
        owner_errors = MagicMock()
        waiter_errors = MagicMock()
        waiter_holder = StateHolder(QueryState(data="old", is_loading=False))

        owner = asyncio.create_task(
            orchestrator.run("k", producer, QueryOptions(retry_count=0, on_error=owner_errors))
        )
        await asyncio.sleep(0)
        waiter = asyncio.create_task(
            orchestrator.run("k", producer, QueryOptions(on_error=waiter_errors), waiter_holder)
        )
        await asyncio.sleep(0)
        producer.gate.set()
        await asyncio.gather(owner, waiter)

        assert producer.calls == 1
        assert waiter_holder.state.data == "old"
        assert isinstance(waiter_holder.state.error, TransportError)
        assert waiter_holder.state.is_loading is False
        owner_errors.assert_called_once()
        waiter_errors.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancelled_owner_does_not_cancel_shared_operation(
        self, orchestrator: FetchOrchestrator, client: QueryClient
    ) -> None:
        """Cancelar quem iniciou a operação não afeta o waiter nem o cache."""
        producer = GatedProducer(value="shared")

        owner = asyncio.create_task(orchestrator.run("k", producer))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(orchestrator.run("k", producer))
        await asyncio.sleep(0)

        owner.cancel()
        await asyncio.sleep(0)
        producer.gate.set()
        state = await waiter

        assert producer.calls == 1
        assert state.data == "shared"
        assert state.error is None
        assert client.cache.get("k") == "shared"
        with pytest.raises(asyncio.CancelledError):
            await owner

    @pytest.mark.asyncio
    async def test_expired_dedup_window_allows_duplicate(self, orchestrator: FetchOrchestrator, clock) -> None:
        """Janela expirada antes do fim da operação permite operação duplicada."""
        producer = GatedProducer()
        options = QueryOptions(deduping_interval=2.0)

        first = asyncio.create_task(orchestrator.run("k", producer, options))
        await asyncio.sleep(0)
        clock.advance(2.5)
        second = asyncio.create_task(orchestrator.run("k", producer, options))
        await asyncio.sleep(0)

        producer.gate.set()
        await asyncio.gather(first, second)

        assert producer.calls == 2

    @pytest.mark.asyncio
    async def test_sequential_runs_hit_cache(self, orchestrator: FetchOrchestrator) -> None:
        """Depois do sucesso, a próxima chamada é servida do cache."""
        producer = FlakyProducer(failures=0)

        await orchestrator.run("k", producer)
        state = await orchestrator.run("k", producer)

        assert producer.calls == 1
        assert state.is_validating is True

    @pytest.mark.asyncio
    async def test_different_keys_are_isolated(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """Falha numa chave não afeta outra."""
        failing = FlakyProducer(failures=10)
        working = FlakyProducer(failures=0)

        failed, succeeded = await asyncio.gather(
            orchestrator.run("a", failing, QueryOptions(retry_count=0)),
            orchestrator.run("b", working),
        )

        assert failed.error is not None
        assert succeeded.data == "value-1"
        assert client.cache.get("a") is None
        assert client.cache.get("b") == "value-1"

    @pytest.mark.asyncio
    async def test_separate_clients_do_not_share_state(self, clock) -> None:
        """Clientes distintos são isolados."""
        first = FetchOrchestrator(QueryClient(clock=clock))
        second = FetchOrchestrator(QueryClient(clock=clock))
        producer = FlakyProducer(failures=0)

        await first.run("k", producer)
        await second.run("k", producer)

        assert producer.calls == 2


class TestRefetch:
    """Testes para refetch."""

    @pytest.mark.asyncio
    async def test_refetch_ignores_fresh_cache(self, orchestrator: FetchOrchestrator, client: QueryClient) -> None:
        """refetch sempre dispara nova busca."""
        client.cache.set("k", "cached", ttl=300)
        producer = FlakyProducer(failures=0)

        state = await orchestrator.refetch("k", producer)

        assert producer.calls == 1
        assert state.data == "value-1"
        assert client.cache.get("k") == "value-1"

    @pytest.mark.asyncio
    async def test_refetch_joins_pending_operation(self, orchestrator: FetchOrchestrator) -> None:
        """refetch com operação pendente aguarda a mesma operação."""
        producer = GatedProducer(value="shared")

        first = asyncio.create_task(orchestrator.run("k", producer))
        await asyncio.sleep(0)
        second = asyncio.create_task(orchestrator.refetch("k", producer))
        await asyncio.sleep(0)
        producer.gate.set()
        await asyncio.gather(first, second)

        assert producer.calls == 1


class TestMetricsIntegration:
    """Testes das métricas registradas pelo orquestrador."""

    @pytest.mark.asyncio
    async def test_records_hits_misses_and_retries(self, client: QueryClient) -> None:
        """Deve registrar hit, miss, erro, retry e fetch."""
        metrics = InMemoryMetrics()

        async def no_sleep(delay: float) -> None:
            return None

        orchestrator = FetchOrchestrator(client, metrics=metrics, sleep=no_sleep)

        await orchestrator.run("k", FlakyProducer(failures=1), QueryOptions(retry_count=1))
        await orchestrator.run("k", FlakyProducer(failures=0))

        stats = metrics.get_stats()
        assert stats.misses == 1
        assert stats.hits == 1
        assert stats.errors == 1
        assert stats.retries == 1
        assert stats.fetches == 1

    @pytest.mark.asyncio
    async def test_records_dedup(self, client: QueryClient) -> None:
        """Deve registrar chamada coalescida."""
        metrics = InMemoryMetrics()
        orchestrator = FetchOrchestrator(client, metrics=metrics)
        producer = GatedProducer()

        first = asyncio.create_task(orchestrator.run("k", producer))
        await asyncio.sleep(0)
        second = asyncio.create_task(orchestrator.run("k", producer))
        await asyncio.sleep(0)
        producer.gate.set()
        await asyncio.gather(first, second)

        key_stats = metrics.get_key_stats("k")
        assert key_stats is not None
        assert key_stats.deduplicated == 1
        assert key_stats.misses == 2
