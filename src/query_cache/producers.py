"""Producers HTTP construídos sobre httpx."""

import asyncio
import logging
from typing import Any

import httpx

from .codecs import Decoder, decoder_for_content_type
from .constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from .exceptions import TransportError
from .state import Producer

logger = logging.getLogger(__name__)


class HttpFetcher:
    """Busca e decodifica recursos HTTP para uso como producer.

    Respostas não-2xx e falhas de rede viram TransportError; corpos que
    não podem ser decodificados viram ParseError. Sem ``decoder``
    explícito, o formato é escolhido pelo Content-Type da resposta.

    Example:
        ```python
        async with HttpFetcher(base_url="https://www.swapi.tech/api") as fetcher:
            observer = QueryObserver(orchestrator, "people:1", fetcher.producer("/people/1"))
            await observer.fetch()
        ```

    Attributes:
        base_url: URL base para caminhos relativos
        timeout: Timeout das requisições em segundos
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
        decoder: Decoder | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Inicializa o fetcher.

        Args:
            base_url: URL base
            timeout: Timeout para operações HTTP
            headers: Headers enviados em toda requisição
            decoder: Decoder fixo (default: escolhido pelo Content-Type)
            client: Cliente httpx externo (não é fechado por este fetcher)
        """
        self._base_url = base_url
        self._timeout = timeout
        self._headers = headers or {}
        self._decoder = decoder
        self._client = client
        self._owns_client = client is None
        # asyncio.Lock é criado lazy para evitar "no current event loop"
        # quando o fetcher é instanciado antes de existir um event loop
        self._client_lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Obtém ou cria lock assíncrono (lazy init)."""
        if self._client_lock is None:
            self._client_lock = asyncio.Lock()
        return self._client_lock

    async def _get_client(self) -> httpx.AsyncClient:
        """Obtém ou cria cliente HTTP assíncrono."""
        if self._client is None:
            async with self._get_lock():
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        base_url=self._base_url,
                        timeout=self._timeout,
                        headers=self._headers,
                    )
        return self._client

    async def fetch(self, url: str) -> Any:
        """Executa GET e decodifica a resposta.

        Args:
            url: URL absoluta ou caminho relativo à base_url

        Returns:
            Corpo decodificado

        Raises:
            TransportError: Falha de rede ou resposta não-2xx
            ParseError: Corpo não decodificável
        """
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Falha ao buscar {url}: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Error fetching data: {response.reason_phrase}",
                status_code=response.status_code,
            )

        decoder = self._decoder or decoder_for_content_type(response.headers.get("content-type"))
        logger.debug(f"Resposta {response.status_code} para {url} ({len(response.content)} bytes)")
        return decoder.decode(response.content)

    def producer(self, url: str) -> Producer:
        """Cria producer sem argumentos para a URL."""

        async def produce() -> Any:
            return await self.fetch(url)

        return produce

    async def aclose(self) -> None:
        """Fecha o cliente HTTP se ele foi criado por este fetcher."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


def http_producer(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    decoder: Decoder | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
) -> Producer:
    """Cria producer para uma única URL.

    Sem ``client``, cada chamada abre e fecha seu próprio AsyncClient.

    Args:
        url: URL absoluta do recurso
        client: Cliente httpx compartilhado (opcional)
        decoder: Decoder fixo (default: escolhido pelo Content-Type)
        timeout: Timeout quando o cliente é criado por chamada

    Returns:
        Producer que busca e decodifica a URL
    """

    async def produce() -> Any:
        if client is not None:
            return await HttpFetcher(decoder=decoder, client=client).fetch(url)
        async with HttpFetcher(timeout=timeout, decoder=decoder) as fetcher:
            return await fetcher.fetch(url)

    return produce
