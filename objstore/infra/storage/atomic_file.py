"""Atomic replacement of local files.

Content is written to a uniquely named temporary file next to the
destination and renamed over it only once everything has been written and
flushed. Readers of the destination see either the old file or the new one.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Generator

DEFAULT_CHUNK_SIZE = 1024 * 1024


@contextmanager
def atomic_open(destination: str | os.PathLike[str]) -> Generator[BinaryIO, None, None]:
    """Open a temporary file that replaces ``destination`` on clean exit.

    If the block raises, the temporary file is deleted, ``destination`` is
    left exactly as it was, and the exception propagates.
    """
    dest = os.fspath(destination)
    directory = os.path.dirname(os.path.abspath(dest))
    fd, tmp_path = tempfile.mkstemp(
        dir=directory,
        prefix=f".{os.path.basename(dest)}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, dest)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def write_atomically(
    destination: str | os.PathLike[str],
    source: BinaryIO,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Copy ``source`` into ``destination`` atomically.

    Returns:
        Number of bytes written.
    """
    with atomic_open(destination) as handle:
        shutil.copyfileobj(source, handle, chunk_size)
        written = handle.tell()
    return written
