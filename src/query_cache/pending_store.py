"""Registro de operações em andamento para coalescing de requisições."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .validators import validate_positive_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEntry:
    """Operação em andamento e o fim da sua janela de deduplicação."""

    operation: "asyncio.Future[Any]"
    expires_at: float


class PendingStore:
    """Registro chave → operação em andamento.

    Enquanto existir uma entrada não expirada para a chave, qualquer
    chamador recebe a mesma future em vez de iniciar nova operação
    (no máximo uma operação física por chave dentro da janela).

    A janela de deduplicação é independente do tempo real da operação:
    se ela expirar antes da operação terminar, um novo chamador não vê
    entrada pendente e inicia uma operação duplicada. Esse comportamento
    é aceito, não corrigido aqui.

    Não há lock: todas as leituras e escritas são síncronas e rodam no
    mesmo event loop, então nunca se intercalam.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Inicializa o store.

        Args:
            clock: Fonte de tempo em segundos (default: time.monotonic)
        """
        self._clock = clock
        self._pending: dict[str, PendingEntry] = {}

    def has(self, key: str) -> bool:
        """Verifica presença bruta da chave (sem checar expiração)."""
        return key in self._pending

    def get(self, key: str) -> "asyncio.Future[Any] | None":
        """Obtém a operação pendente para a chave.

        Entradas com a janela de deduplicação expirada são removidas
        nesta leitura e tratadas como ausentes.

        Args:
            key: Chave da query

        Returns:
            Future compartilhada ou None
        """
        entry = self._pending.get(key)
        if entry is None:
            return None

        if self._clock() >= entry.expires_at:
            logger.debug(f"Janela de deduplicação expirada para chave: {key}")
            del self._pending[key]
            return None

        return entry.operation

    def set(self, key: str, operation: "asyncio.Future[Any]", dedup_window: float) -> None:
        """Registra operação, sobrescrevendo entrada anterior da chave.

        Args:
            key: Chave da query
            operation: Future/Task da operação em andamento
            dedup_window: Janela de deduplicação em segundos (> 0)
        """
        validate_positive_duration("dedup_window", dedup_window)
        self._pending[key] = PendingEntry(operation=operation, expires_at=self._clock() + dedup_window)

    def remove(self, key: str) -> bool:
        """Remove a entrada da chave.

        Returns:
            True se havia entrada para remover
        """
        return self._pending.pop(key, None) is not None

    def clear(self) -> int:
        """Remove todas as entradas sem cancelar as operações.

        Returns:
            Número de entradas removidas
        """
        count = len(self._pending)
        self._pending.clear()
        return count

    def __len__(self) -> int:
        return len(self._pending)
