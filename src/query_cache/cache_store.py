"""Store de valores resolvidos com TTL e eviction lazy."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .validators import validate_positive_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Valor resolvido e sua janela de validade.

    Attributes:
        data: Valor armazenado
        created_at: Instante da escrita (segundos do clock do store)
        expires_at: Instante a partir do qual a entrada é considerada ausente
    """

    data: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore:
    """Registro chave → valor resolvido, limitado apenas por TTL.

    Não existe limpeza em background: entradas expiradas são removidas
    no momento em que são lidas. Um hit nunca estende a validade da
    entrada (sem refresh estilo LRU).

    Não há limite de capacidade; o número de chaves cresce com o uso.

    Example:
        ```python
        store = CacheStore()
        store.set("users:1", {"name": "Luke"}, ttl=300)
        store.get("users:1")  # {"name": "Luke"}
        ```
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Inicializa o store.

        Args:
            clock: Fonte de tempo em segundos (default: time.monotonic)
        """
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get_entry(self, key: str) -> CacheEntry | None:
        """Retorna a entrada completa ou None se ausente/expirada.

        Entradas expiradas são removidas nesta leitura.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            logger.debug(f"Cache expirado para chave: {key}")
            del self._entries[key]
            return None

        return entry

    def get(self, key: str) -> Any | None:
        """Busca valor do cache.

        Args:
            key: Chave da query

        Returns:
            Valor armazenado ou None se ausente ou expirado
        """
        entry = self.get_entry(key)
        return None if entry is None else entry.data

    def set(self, key: str, data: Any, ttl: float) -> CacheEntry:
        """Armazena valor, sobrescrevendo qualquer entrada anterior.

        Args:
            key: Chave da query
            data: Valor a armazenar
            ttl: Tempo de vida em segundos (> 0)

        Returns:
            A entrada criada

        Raises:
            ValidationError: Se ttl não for positivo
        """
        validate_positive_duration("ttl", ttl)
        now = self._clock()
        entry = CacheEntry(data=data, created_at=now, expires_at=now + ttl)
        self._entries[key] = entry
        logger.debug(f"Cache set para chave: {key}, TTL: {ttl}s")
        return entry

    def remove(self, key: str) -> bool:
        """Remove a entrada da chave.

        Returns:
            True se havia entrada para remover
        """
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove todas as entradas.

        Returns:
            Número de entradas removidas
        """
        count = len(self._entries)
        self._entries.clear()
        return count

    def __contains__(self, key: object) -> bool:
        # Presença bruta, sem checar expiração
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
