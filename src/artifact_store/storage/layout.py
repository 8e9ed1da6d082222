"""
Content layout helpers.

Centralizes the mapping between an object id and its two files under the
storage root:

    <root>/<id>_<sanitizedName>   content
    <root>/<id>.meta              metadata sidecar

There is no index file; reverse lookup from id to content path is a prefix
scan over the directory.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

__all__ = [
    "ContentLayout",
    "SEPARATOR",
    "SIDECAR_SUFFIX",
    "TEMP_PREFIX",
    "new_object_id",
    "is_object_id",
]

SEPARATOR = "_"
SIDECAR_SUFFIX = ".meta"
TEMP_PREFIX = ".tmp-"


def new_object_id() -> str:
    """Generate a fresh object id (random UUID4, canonical string form)."""
    return str(uuid.uuid4())


def is_object_id(value: str) -> bool:
    """
    Check that `value` is a canonical lowercase UUID string.

    Canonical form guarantees the id never contains the layout separator.
    """
    if not value or len(value) != 36:
        return False
    try:
        return str(uuid.UUID(value)) == value
    except ValueError:
        return False


@dataclass(frozen=True)
class ContentLayout:
    """
    Deterministic id -> path mapping for one storage root.

    Examples:
        >>> layout = ContentLayout(Path("/data"))
        >>> layout.content_path("3f2a...", "sample.gb")
        PosixPath('/data/3f2a..._sample.gb')
        >>> layout.sidecar_path("3f2a...")
        PosixPath('/data/3f2a....meta')
    """
    root: Path

    def content_prefix(self, object_id: str) -> str:
        return f"{object_id}{SEPARATOR}"

    def content_path(self, object_id: str, sanitized_name: str) -> Path:
        if SEPARATOR in object_id:
            raise ValueError(f"object id must not contain '{SEPARATOR}': {object_id}")
        if sanitized_name.startswith(SEPARATOR):
            raise ValueError(f"sanitized name must not start with '{SEPARATOR}': {sanitized_name}")
        return self.root / f"{self.content_prefix(object_id)}{sanitized_name}"

    def sidecar_path(self, object_id: str) -> Path:
        return self.root / f"{object_id}{SIDECAR_SUFFIX}"

    def temp_path(self, token: str) -> Path:
        """Scratch path for atomic writes; never matches content or sidecar names."""
        return self.root / f"{TEMP_PREFIX}{token}"

    @staticmethod
    def parse_content_name(filename: str) -> Optional[str]:
        """
        Return the object id of a well-formed `<uuid>_<name>` content file.

        Returns None for sidecars, temp files and anything else.
        """
        if filename.startswith(TEMP_PREFIX) or filename.endswith(SIDECAR_SUFFIX):
            return None
        object_id, sep, rest = filename.partition(SEPARATOR)
        if not sep or not rest or not is_object_id(object_id):
            return None
        return object_id

    @staticmethod
    def parse_sidecar_name(filename: str) -> Optional[str]:
        """Return the object id of a `<uuid>.meta` sidecar, else None."""
        if not filename.endswith(SIDECAR_SUFFIX):
            return None
        object_id = filename[: -len(SIDECAR_SUFFIX)]
        return object_id if is_object_id(object_id) else None

    def owns(self, path: Path) -> bool:
        """Whether `path` is a direct child of the storage root."""
        try:
            return path.resolve().parent == self.root.resolve()
        except OSError:
            return False
