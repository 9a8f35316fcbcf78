"""Exceções do query-cache."""


class QueryError(Exception):
    """Erro base para operações de query."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class TransportError(QueryError):
    """Falha na chamada subjacente do producer (ex: resposta não-2xx)."""

    def __init__(self, message: str, key: str | None = None, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message, key=key)


class ParseError(QueryError):
    """Resultado do producer não pôde ser decodificado."""

    pass


class QueryKeyError(QueryError):
    """Erro relacionado à chave da query (vazia, inválida, etc.)."""

    pass


class ConsumerCallbackError(QueryError):
    """Erro levantado dentro de um callback do consumidor (ex: on_error).

    O orquestrador nunca captura nem encapsula erros de callbacks: eles
    propagam exatamente como foram levantados.
    """

    pass


class ValidationError(QueryError, ValueError):
    """Parâmetro de configuração inválido."""

    pass
