"""Decodificação de respostas dos producers (JSON e MsgPack)."""

import json
from typing import Any, Protocol

import msgpack

from .exceptions import ParseError

MSGPACK_CONTENT_TYPES = frozenset({"application/msgpack", "application/x-msgpack", "application/vnd.msgpack"})


class Decoder(Protocol):
    """Protocol para decodificadores de payload."""

    def decode(self, data: bytes) -> Any:
        """Decodifica bytes para dados Python."""
        ...


class JsonDecoder:
    """Decoder JSON (UTF-8)."""

    def decode(self, data: bytes) -> Any:
        """Decodifica bytes JSON para dados Python.

        Args:
            data: Corpo da resposta

        Returns:
            Dados Python decodificados

        Raises:
            ParseError: Se o corpo não for JSON válido
        """
        try:
            return json.loads(data)
        except (UnicodeDecodeError, ValueError) as e:
            raise ParseError(f"Falha ao decodificar JSON: {e}") from e


class MsgPackDecoder:
    """Decoder usando MessagePack.

    MsgPack é um formato binário mais compacto que JSON, comum em APIs
    internas de alta vazão.
    """

    def decode(self, data: bytes) -> Any:
        """Decodifica bytes MsgPack para dados Python.

        Raises:
            ParseError: Se os bytes não forem MsgPack válido
        """
        try:
            return msgpack.unpackb(data, raw=False)
        except (msgpack.UnpackException, ValueError) as e:
            raise ParseError(f"Falha ao decodificar MsgPack: {e}") from e


def decoder_for_content_type(content_type: str | None) -> Decoder:
    """Escolhe o decoder a partir do header Content-Type.

    MsgPack para os media types conhecidos, JSON para o resto.
    """
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type in MSGPACK_CONTENT_TYPES:
        return MsgPackDecoder()
    return JsonDecoder()
