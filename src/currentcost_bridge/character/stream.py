"""Incremental character stream over a blocking byte source.

The monitor writes a continuous byte stream with no framing, so characters
are decoded incrementally as bytes arrive. Corrupt bytes decode to U+FFFD
instead of raising; only the byte source itself can fail.
"""

import codecs
from dataclasses import dataclass
from typing import Protocol

from currentcost_bridge.shared.errors import TransportError

DEFAULT_CHUNK_SIZE = 1024


class ByteSource(Protocol):
    """Anything that can hand out bytes on request.

    ``read`` blocks until at least one byte is available and returns an empty
    bytes object only when the source is exhausted or its read timed out.
    """

    def read(self, size: int) -> bytes:
        ...


@dataclass
class StreamPosition:
    """Bytes and characters consumed so far."""

    bytes_read: int = 0
    chars_decoded: int = 0
    replacement_chars: int = 0


class CharacterStream:
    """Pull characters one at a time from a byte source.

    Args:
        source: Blocking byte source (serial port, socket wrapper, BytesIO)
        encoding: Codec used to decode the stream
        chunk_size: Maximum bytes requested per read
    """

    def __init__(
        self,
        source: ByteSource,
        encoding: str = "utf-8",
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        try:
            decoder_factory = codecs.getincrementaldecoder(encoding)
        except LookupError as e:
            raise ValueError(f"Unsupported encoding: {encoding}") from e

        self.source = source
        self.encoding = encoding
        self.chunk_size = chunk_size
        self.position = StreamPosition()
        self._decoder = decoder_factory(errors="replace")
        self._pending = ""
        self._index = 0

    def read_char(self) -> str:
        """Return the next decoded character, blocking until one is available.

        Raises:
            TransportError: The source failed, was exhausted, or timed out
        """
        while self._index >= len(self._pending):
            self._fill()

        char = self._pending[self._index]
        self._index += 1
        self.position.chars_decoded += 1
        return char

    def _fill(self) -> None:
        """Read one chunk from the source and decode it."""
        try:
            data = self.source.read(self.chunk_size)
        except OSError as e:
            # serial.SerialException derives from OSError
            raise TransportError(f"Read from byte source failed: {e}") from e

        if not data:
            raise TransportError("Byte source exhausted or read timed out")

        self.position.bytes_read += len(data)
        text = self._decoder.decode(data)
        self.position.replacement_chars += text.count("\ufffd")
        self._pending = text
        self._index = 0
