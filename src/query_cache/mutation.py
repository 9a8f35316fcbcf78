"""Atualizações otimistas gravadas direto no cache."""

import logging
from collections.abc import Callable
from typing import Any, Union

from .client import QueryClient
from .validators import validate_key

logger = logging.getLogger(__name__)

ValueOrUpdater = Union[Any, Callable[[Any], Any]]


class MutationApplier:
    """Grava valores locais no CacheStore sem passar pelo producer.

    Não toca no PendingStore nem reconcilia com buscas em andamento: se
    uma busca concorrente para a mesma chave terminar depois, o resultado
    dela sobrescreve o valor mutado (vence quem termina por último).
    """

    def __init__(self, client: QueryClient) -> None:
        self._client = client

    def mutate(self, key: str, value_or_updater: ValueOrUpdater, current: Any, cache_time: float) -> Any:
        """Calcula e grava o novo valor.

        Args:
            key: Chave da query
            value_or_updater: Novo valor ou função ``current -> novo valor``
            current: Valor observado pelo consumidor (não necessariamente o do cache)
            cache_time: TTL em segundos para a nova entrada

        Returns:
            Valor gravado
        """
        validate_key(key)
        new_value = value_or_updater(current) if callable(value_or_updater) else value_or_updater
        self._client.cache.set(key, new_value, cache_time)
        logger.debug(f"Mutação aplicada para chave: {key}")
        return new_value
