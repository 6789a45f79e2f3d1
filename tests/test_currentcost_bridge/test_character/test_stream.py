"""Tests for incremental character decoding over byte sources."""

import io
from unittest.mock import Mock

import pytest

from currentcost_bridge.character import CharacterStream
from currentcost_bridge.shared.errors import TransportError


def read_all(stream: CharacterStream) -> str:
    chars = []
    while True:
        try:
            chars.append(stream.read_char())
        except TransportError:
            return "".join(chars)


class TestCharacterStream:
    """Test the CharacterStream class."""

    def test_reads_ascii(self):
        # Arrange
        stream = CharacterStream(io.BytesIO(b"<msg>"))

        # Act
        text = read_all(stream)

        # Assert
        assert text == "<msg>"
        assert stream.position.bytes_read == 5
        assert stream.position.chars_decoded == 5

    def test_multibyte_character_split_across_reads(self):
        """Test that a character split between two reads decodes once."""
        data = "<tmpr>21.5°</tmpr>".encode("utf-8")
        stream = CharacterStream(io.BytesIO(data), chunk_size=1)

        assert read_all(stream) == "<tmpr>21.5°</tmpr>"

    def test_corrupt_bytes_become_replacement_characters(self):
        stream = CharacterStream(io.BytesIO(b"<a>\xff\xfe</a>"))

        text = read_all(stream)

        assert "\ufffd" in text
        assert text.startswith("<a>")
        assert text.endswith("</a>")
        assert stream.position.replacement_chars == 2

    def test_alternative_encoding(self):
        stream = CharacterStream(io.BytesIO("café".encode("latin-1")), encoding="latin-1")
        assert read_all(stream) == "café"

    def test_exhausted_source_raises_transport_error(self):
        stream = CharacterStream(io.BytesIO(b""))

        with pytest.raises(TransportError, match="exhausted"):
            stream.read_char()

    def test_source_os_error_is_wrapped(self):
        source = Mock()
        source.read.side_effect = OSError("device reports readiness to read but returned no data")
        stream = CharacterStream(source)

        with pytest.raises(TransportError) as exc_info:
            stream.read_char()

        assert isinstance(exc_info.value.__cause__, OSError)

    def test_requests_configured_chunk_size(self):
        source = Mock()
        source.read.return_value = b"x"
        stream = CharacterStream(source, chunk_size=64)

        stream.read_char()

        source.read.assert_called_once_with(64)

    def test_invalid_encoding(self):
        with pytest.raises(ValueError, match="Unsupported encoding"):
            CharacterStream(io.BytesIO(b""), encoding="no-such-codec")

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError, match="chunk_size"):
            CharacterStream(io.BytesIO(b""), chunk_size=0)
