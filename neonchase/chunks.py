"""Reading and writing tagged binary chunks.

A chunk is a four-byte magic tag, a four-byte little-endian size and
``size`` bytes of fixed-size records.
"""

from __future__ import annotations

import struct
from typing import BinaryIO, Iterable

_HEADER = struct.Struct("<4sI")


class ChunkError(ValueError):
    """Raised when a chunk cannot be read."""


def _magic_bytes(magic) -> bytes:
    return magic.encode("ascii") if isinstance(magic, str) else bytes(magic)


def _element_struct(element_format: str) -> struct.Struct:
    if not element_format or element_format[0] not in "@=<>!":
        element_format = "<" + element_format
    return struct.Struct(element_format)


def read_chunk(stream: BinaryIO, magic, element_format: str | None = None):
    """Read one chunk with tag ``magic``.

    With no ``element_format`` the raw bytes are returned; otherwise a list
    of tuples unpacked with that ``struct`` format.
    """
    expected = _magic_bytes(magic)
    header = stream.read(_HEADER.size)
    if len(header) != _HEADER.size:
        raise ChunkError("Failed to read chunk header")
    found, size = _HEADER.unpack(header)
    if found != expected:
        raise ChunkError("Unexpected magic number in chunk")
    element = None if element_format is None else _element_struct(element_format)
    element_size = 1 if element is None else element.size
    if element_size == 0 or size % element_size != 0:
        raise ChunkError("Size of chunk not divisible by element size")
    data = stream.read(size)
    if len(data) != size:
        raise ChunkError("Failed to read chunk data.")
    if element is None:
        return data
    return list(element.iter_unpack(data))


def write_chunk(magic, records: Iterable, stream: BinaryIO, element_format: str | None = None) -> None:
    """Write ``records`` as a chunk tagged ``magic``.

    With no ``element_format`` ``records`` is a bytes-like object; otherwise
    an iterable of tuples packed with that ``struct`` format.
    """
    tag = _magic_bytes(magic)
    if len(tag) != 4:
        raise ValueError("chunk magic must be exactly four bytes")
    if element_format is None:
        data = bytes(records)
    else:
        element = _element_struct(element_format)
        data = b"".join(element.pack(*record) for record in records)
    stream.write(_HEADER.pack(tag, len(data)))
    stream.write(data)