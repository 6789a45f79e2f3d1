"""Character layer: byte sources and incremental decoding."""

from .stream import ByteSource, CharacterStream, StreamPosition

__all__ = [
    "ByteSource",
    "CharacterStream",
    "StreamPosition",
]
