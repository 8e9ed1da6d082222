"""
Atomic file writes for the storage root.

Content is streamed into a temp file in the destination directory, flushed
and fsynced, then renamed over the final name. Readers never observe a
partially written file.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

from .layout import TEMP_PREFIX

__all__ = ["write_bytes_atomically", "copy_file_atomically", "CHUNK_SIZE"]

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def _write_atomically(target_path: Path, source: Union[bytes, BinaryIO]) -> int:
    fd, temp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=target_path.parent)
    temp_path = Path(temp_name)
    written = 0

    try:
        with os.fdopen(fd, "wb", buffering=0) as out:
            if isinstance(source, (bytes, bytearray, memoryview)):
                out.write(source)
                written = len(source)
            else:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
                    written += len(chunk)
            out.flush()
            os.fsync(out.fileno())

        os.replace(temp_path, target_path)
        return written

    except BaseException:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def write_bytes_atomically(target_path: Path, data: bytes) -> int:
    """
    Write `data` to `target_path` via temp file + rename.

    Returns:
        Number of bytes written

    Raises:
        OSError: If any file operation fails (temp file is removed)
    """
    return _write_atomically(target_path, data)


def copy_file_atomically(source_path: Path, target_path: Path) -> int:
    """
    Copy `source_path` to `target_path` in chunks via temp file + rename.

    Returns:
        Number of bytes copied

    Raises:
        OSError: If the source cannot be read or the target written
    """
    with open(source_path, "rb") as src:
        return _write_atomically(target_path, src)
