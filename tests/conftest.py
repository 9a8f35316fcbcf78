"""Configuração de fixtures para testes."""

import pytest

from query_cache import FetchOrchestrator, QueryClient


class FakeClock:
    """Relógio controlado manualmente (segundos)."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Relógio começando em t=0."""
    return FakeClock()


@pytest.fixture
def client(clock: FakeClock) -> QueryClient:
    """QueryClient isolado usando o relógio falso."""
    return QueryClient(clock=clock)


@pytest.fixture
def sleeps() -> list[float]:
    """Atrasos solicitados pelo orquestrador entre tentativas."""
    return []


@pytest.fixture
def orchestrator(client: QueryClient, sleeps: list[float]) -> FetchOrchestrator:
    """Orquestrador que registra os atrasos em vez de dormir."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return FetchOrchestrator(client, sleep=fake_sleep)
