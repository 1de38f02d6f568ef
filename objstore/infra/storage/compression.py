"""Brotli compression for payloads stored pre-compressed.

Objects are compressed at maximum quality since this is used to prepare
static assets, not on a latency-sensitive path.
"""

from __future__ import annotations

import io
import os
from typing import BinaryIO

import brotli

BEST_COMPRESSION = 11
READ_CHUNK_SIZE = 64 * 1024


class CompressionError(OSError):
    """Raised when the brotli encoder or decoder fails."""


def compress(data: bytes, *, quality: int = BEST_COMPRESSION) -> bytes:
    try:
        return brotli.compress(data, quality=quality)
    except brotli.error as exc:
        raise CompressionError(f"Failed to compress data: {exc}") from exc


def decompress(data: bytes) -> bytes:
    try:
        return brotli.decompress(data)
    except brotli.error as exc:
        raise CompressionError(f"Failed to decompress data: {exc}") from exc


def compress_file(path: str | os.PathLike[str], *, quality: int = BEST_COMPRESSION) -> bytes:
    """Read a whole local file into memory and compress it in one shot."""
    with open(path, "rb") as handle:
        data = handle.read()
    return compress(data, quality=quality)


class CompressingReader(io.RawIOBase):
    """Read-only stream producing the brotli encoding of ``source``.

    Lets an upload consume compressed bytes while the source is still being
    read, instead of holding the whole compressed payload in memory. The
    stream is not seekable, so its length is unknown up front.
    """

    def __init__(
        self,
        source: BinaryIO,
        *,
        quality: int = BEST_COMPRESSION,
        chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        super().__init__()
        self._source = source
        self._compressor = brotli.Compressor(quality=quality)
        self._chunk_size = chunk_size
        self._pending = b""
        self._finished = False
        self.bytes_in = 0
        self.bytes_out = 0

    def readable(self) -> bool:
        return True

    def _fill(self) -> None:
        while not self._pending and not self._finished:
            chunk = self._source.read(self._chunk_size)
            try:
                if chunk:
                    self.bytes_in += len(chunk)
                    self._pending = self._compressor.process(chunk)
                else:
                    self._pending = self._compressor.finish()
                    self._finished = True
            except brotli.error as exc:
                raise CompressionError(f"Failed to compress stream: {exc}") from exc

    def readinto(self, buffer) -> int:
        self._fill()
        if not self._pending:
            return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        self.bytes_out += size
        return size
