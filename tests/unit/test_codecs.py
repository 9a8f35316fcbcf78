"""Testes para os decoders."""

import msgpack
import pytest

from query_cache import JsonDecoder, MsgPackDecoder, ParseError, decoder_for_content_type


class TestJsonDecoder:
    """Testes para JsonDecoder."""

    def test_decode_object(self) -> None:
        """Deve decodificar objeto JSON."""
        assert JsonDecoder().decode(b'{"name": "Luke", "height": "172"}') == {"name": "Luke", "height": "172"}

    def test_decode_invalid_raises_parse_error(self) -> None:
        """JSON inválido vira ParseError."""
        with pytest.raises(ParseError, match="Falha ao decodificar JSON"):
            JsonDecoder().decode(b"<html>not json</html>")

    def test_decode_invalid_utf8_raises_parse_error(self) -> None:
        """Bytes não-UTF-8 viram ParseError."""
        with pytest.raises(ParseError):
            JsonDecoder().decode(b"\x80abc")


class TestMsgPackDecoder:
    """Testes para MsgPackDecoder."""

    def test_decode(self) -> None:
        """Deve decodificar payload MsgPack."""
        payload = msgpack.packb({"result": [1, 2, 3]}, use_bin_type=True)
        assert MsgPackDecoder().decode(payload) == {"result": [1, 2, 3]}

    def test_decode_invalid_raises_parse_error(self) -> None:
        """Payload inválido vira ParseError."""
        with pytest.raises(ParseError, match="Falha ao decodificar MsgPack"):
            MsgPackDecoder().decode(b"\xc1")


class TestDecoderForContentType:
    """Testes para a escolha de decoder."""

    @pytest.mark.parametrize(
        "content_type",
        ["application/msgpack", "application/x-msgpack", "Application/MsgPack; charset=binary"],
    )
    def test_msgpack_types(self, content_type: str) -> None:
        """Media types MsgPack usam MsgPackDecoder."""
        assert isinstance(decoder_for_content_type(content_type), MsgPackDecoder)

    @pytest.mark.parametrize("content_type", [None, "", "application/json", "text/plain"])
    def test_defaults_to_json(self, content_type: str | None) -> None:
        """Qualquer outro tipo usa JsonDecoder."""
        assert isinstance(decoder_for_content_type(content_type), JsonDecoder)
