"""
Path safety utilities for the artifact store.

This module provides shared validation for producer-supplied file names to
prevent directory traversal and to keep the `<id>_<name>` layout unambiguous.
"""
from __future__ import annotations

import re
from pathlib import PurePosixPath, PureWindowsPath

from .storage.errors import StorageFault

__all__ = ["validate_original_name", "sanitize_name", "replace_extension", "FALLBACK_NAME"]

FALLBACK_NAME = "artifact"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def validate_original_name(name: str) -> str:
    """
    Validate a producer-supplied original name.

    This function enforces the following safety rules:
    - No None or blank names
    - No parent directory sequences ('..' anywhere in the name)
    - No absolute paths (POSIX or Windows)
    - No NUL bytes

    Args:
        name: Original file name as supplied by the uploader

    Returns:
        The name, unchanged

    Raises:
        StorageFault: If the name violates safety rules

    Examples:
        >>> validate_original_name("sequence.fasta")
        'sequence.fasta'

        >>> validate_original_name("../../etc/passwd")
        StorageFault: Filename contains invalid path sequence: ../../etc/passwd
    """
    if name is None or not str(name).strip():
        raise StorageFault("Filename is required")
    if "\x00" in name:
        raise StorageFault(f"Filename contains a NUL byte: {name!r}")
    if ".." in name:
        raise StorageFault(f"Filename contains invalid path sequence: {name}")
    if PurePosixPath(name).is_absolute() or PureWindowsPath(name).is_absolute():
        raise StorageFault(f"Filename must not be an absolute path: {name}")
    return name


def sanitize_name(name: str) -> str:
    """
    Reduce an original name to a single safe path component.

    Keeps only the final component (both '/' and '\\' count as separators),
    strips leading dots, underscores and whitespace so the name can never
    start with the layout separator, and replaces anything outside
    [A-Za-z0-9._-] with '_'.

    Examples:
        >>> sanitize_name("reads/sample 1.fasta")
        'sample_1.fasta'

        >>> sanitize_name("__hidden")
        'hidden'
    """
    last = re.split(r"[\\/]", name)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", last.strip())
    cleaned = cleaned.lstrip("._")
    return cleaned or FALLBACK_NAME


def replace_extension(name: str, extension: str) -> str:
    """
    Swap the last extension of a name for `extension`.

    Examples:
        >>> replace_extension("sample.fasta", ".gb")
        'sample.gb'

        >>> replace_extension("sample", ".gb")
        'sample.gb'
    """
    stem, dot, _ = name.rpartition(".")
    base = stem if dot and stem else name
    return f"{base}{extension}"
