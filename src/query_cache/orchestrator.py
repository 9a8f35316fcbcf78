"""
Orquestração de cache, coalescing e retry para uma query.

Para cada chamada de ``run`` escolhe entre servir do cache, aguardar uma
operação já em andamento para a mesma chave ou iniciar uma nova busca
com retry, publicando cada resultado como um QueryState.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from .client import QueryClient
from .metrics import NoOpMetrics, QueryMetrics
from .state import Producer, QueryOptions, QueryState, StateHolder
from .validators import validate_key

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class FetchOrchestrator:
    """Executa o fluxo cache → pendente → busca com retry.

    Fluxo de ``run``:

    1. Cache hit: publica o valor com ``is_validating=True`` e para. Nenhuma
       busca é disparada e nada volta ``is_validating`` para False.
    2. Operação pendente para a chave: aguarda a mesma future e publica o
       resultado (ou o erro, chamando ``on_error``).
    3. Caso contrário: até ``retry_count + 1`` tentativas, cada uma
       registrada no PendingStore e removida dele ao terminar, com atraso
       fixo de ``retry_delay`` entre elas.

    Não há cancelamento: uma cadeia iniciada roda até o sucesso ou até
    esgotar as tentativas, mesmo que o consumidor pare de observar.

    Attributes:
        client: QueryClient com os stores compartilhados
    """

    def __init__(
        self,
        client: QueryClient,
        metrics: QueryMetrics | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Inicializa o orquestrador.

        Args:
            client: Dono do CacheStore e do PendingStore
            metrics: Coletor de métricas (default: NoOpMetrics)
            sleep: Função de espera entre tentativas (default: asyncio.sleep)
        """
        self._client = client
        self._metrics = metrics or NoOpMetrics()
        self._sleep = sleep

    @property
    def client(self) -> QueryClient:
        return self._client

    async def run(
        self,
        key: str,
        producer: Producer,
        options: QueryOptions | None = None,
        holder: StateHolder | None = None,
    ) -> QueryState:
        """Executa o fluxo completo para a chave.

        Args:
            key: Chave da query
            producer: Função sem argumentos que retorna um awaitable com o valor
            options: Opções da query (default: opções do client)
            holder: Destino das emissões (default: holder descartável)

        Returns:
            Último estado publicado

        Raises:
            QueryKeyError: Se a chave for vazia
            Exception: Qualquer erro levantado por ``on_error`` ou listeners
        """
        validate_key(key)
        options = options or self._client.default_options
        holder = holder if holder is not None else StateHolder()

        entry = self._client.cache.get_entry(key)
        if entry is not None:
            logger.debug(f"Cache hit: {key}")
            self._metrics.record_hit(key)
            holder.emit(QueryState(data=entry.data, error=None, is_loading=False, is_validating=True))
            return holder.state

        logger.debug(f"Cache miss: {key}")
        self._metrics.record_miss(key)

        pending = self._client.pending.get(key)
        if pending is not None:
            await self._await_pending(key, pending, options, holder)
            return holder.state

        holder.update(is_loading=True, is_validating=False)
        await self._fetch_with_retry(key, producer, options, holder)
        return holder.state

    async def refetch(
        self,
        key: str,
        producer: Producer,
        options: QueryOptions | None = None,
        holder: StateHolder | None = None,
    ) -> QueryState:
        """Descarta a entrada de cache e executa o fluxo completo.

        É a única forma de forçar nova busca de uma entrada ainda válida.
        """
        validate_key(key)
        self._client.cache.remove(key)
        return await self.run(key, producer, options, holder)

    async def _await_pending(
        self,
        key: str,
        pending: "asyncio.Future[Any]",
        options: QueryOptions,
        holder: StateHolder,
    ) -> None:
        """Aguarda operação em andamento de outro chamador."""
        logger.debug(f"Aguardando operação existente para: {key}")
        self._metrics.record_dedup(key)

        try:
            # shield: se este chamador for cancelado, a operação compartilhada segue
            data = await asyncio.shield(pending)
        except Exception as error:
            logger.debug(f"Operação compartilhada falhou para {key}: {error}")
            holder.update(error=error, is_loading=False, is_validating=False)
            self._notify_error(options, error)
            return

        holder.emit(QueryState(data=data, error=None, is_loading=False, is_validating=False))

    async def _fetch_with_retry(
        self,
        key: str,
        producer: Producer,
        options: QueryOptions,
        holder: StateHolder,
    ) -> None:
        """Loop de tentativas: 0..retry_count inclusive."""
        last_error: Exception | None = None
        for attempt in range(options.retry_count + 1):
            logger.debug(f"Tentativa {attempt + 1}/{options.retry_count + 1} para: {key}")
            operation = self._start_operation(key, producer, options.cache_time)
            self._client.pending.set(key, operation, options.deduping_interval)
            start_time = time.perf_counter()

            try:
                # shield: cancelar quem iniciou não cancela quem está aguardando
                data = await asyncio.shield(operation)
            except Exception as error:
                last_error = error
                logger.debug(f"Tentativa {attempt + 1} falhou para {key}: {error}")
                self._metrics.record_error(key, error)
                holder.update(error=error, is_loading=False, is_validating=False)
                self._notify_error(options, error)
            else:
                self._metrics.record_fetch(key, time.perf_counter() - start_time)
                holder.emit(QueryState(data=data, error=None, is_loading=False, is_validating=False))
                return
            finally:
                self._client.pending.remove(key)

            if attempt < options.retry_count:
                self._metrics.record_retry(key, attempt + 1)
                await self._sleep(options.retry_delay)

        logger.warning(f"Tentativas esgotadas para {key}: {last_error}")

    def _start_operation(self, key: str, producer: Producer, cache_time: float) -> "asyncio.Task[Any]":
        """Cria a task compartilhável que busca e grava no cache."""
        cache = self._client.cache

        async def produce_and_store() -> Any:
            data = await producer()
            cache.set(key, data, cache_time)
            return data

        return asyncio.ensure_future(produce_and_store())

    @staticmethod
    def _notify_error(options: QueryOptions, error: Exception) -> None:
        # Erros do callback não são capturados: propagam para o chamador
        if options.on_error is not None:
            options.on_error(error)
