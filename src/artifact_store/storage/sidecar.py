"""
Metadata sidecar handling.

Each registered object has one `<id>.meta` JSON document next to its
content. Sidecars are written atomically and read tolerantly: unknown keys
are ignored, and malformed documents raise ValueError so scans can skip them.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..models import ObjectMetadata
from .atomic import write_bytes_atomically

__all__ = ["write_sidecar", "read_sidecar", "encode_sidecar"]

logger = logging.getLogger(__name__)


def encode_sidecar(record: ObjectMetadata) -> bytes:
    """Canonical JSON encoding of a metadata record."""
    return json.dumps(
        record.to_sidecar(),
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
    ).encode("utf-8")


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)
def write_sidecar(sidecar_path: Path, record: ObjectMetadata) -> Path:
    """
    Write a metadata sidecar atomically.

    Transient OSErrors are retried a few times before giving up; the last
    error is re-raised unchanged.

    Args:
        sidecar_path: Destination `<root>/<id>.meta`
        record: Metadata to persist

    Returns:
        Path to the written sidecar

    Raises:
        OSError: If the write keeps failing
    """
    write_bytes_atomically(sidecar_path, encode_sidecar(record))
    logger.debug(f"Wrote sidecar {sidecar_path.name}")
    return sidecar_path


def read_sidecar(sidecar_path: Path) -> ObjectMetadata:
    """
    Read and validate a metadata sidecar.

    Args:
        sidecar_path: Path to the sidecar

    Returns:
        Parsed ObjectMetadata

    Raises:
        FileNotFoundError: If the sidecar doesn't exist
        OSError: If it cannot be read
        ValueError: If it is not valid JSON or not a valid record
    """
    raw = sidecar_path.read_bytes()
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Malformed sidecar {sidecar_path.name}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Malformed sidecar {sidecar_path.name}: expected a JSON object")

    try:
        return ObjectMetadata.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid sidecar {sidecar_path.name}: {e}") from e
