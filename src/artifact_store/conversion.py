"""
Conversion seam between the request layer, the converter and the store.

The converter is an opaque external library. This module only stages its
inputs in the store, calls it, and registers the artifact it produces.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Protocol, Tuple

from .storage.errors import ConversionFailed, StorageError, StorageFault
from .storage.local_store import LocalArtifactStore

__all__ = ["Artifact", "Converter", "ConversionOutcome", "ConversionService", "Upload"]

logger = logging.getLogger(__name__)

# (content bytes, original file name) as received from an upload
Upload = Tuple[bytes, str]


class Artifact(Protocol):
    """Result produced by the converter."""

    def write_to_file(self, path: Path) -> None:
        ...


class Converter(Protocol):
    """
    Opaque conversion algorithm.

    The store never looks inside `options`; it is passed through untouched.
    """

    def convert(self, sequence_path: Path, annotation_path: Path, options: Any) -> Artifact:
        ...


@dataclass(frozen=True)
class ConversionOutcome:
    """What the request layer needs to answer a conversion request."""
    id: str
    download_path: str
    expires_at: datetime
    message: str


class ConversionService:
    """
    Ingest two inputs, convert them and retain the result.

    Inputs are stored with `put` and discarded once the artifact is
    registered; if this process dies first they are left without a sidecar
    and the orphan sweep reclaims them.
    """

    def __init__(self, store: LocalArtifactStore, converter: Converter) -> None:
        self._store = store
        self._converter = converter

    def convert_and_register(
        self,
        sequence: Upload,
        annotation: Upload,
        options: Any = None,
        owner_tag: Optional[str] = None,
        retention: Optional[timedelta] = None,
    ) -> ConversionOutcome:
        """
        Run one conversion end to end.

        Args:
            sequence: Sequence upload; its name becomes the artifact's name
            annotation: Annotation upload
            options: Passed through to the converter
            owner_tag: Tenant/client tag recorded on the artifact
            retention: Retention window (defaults to the store's setting)

        Returns:
            ConversionOutcome with the new id and download path

        Raises:
            StorageFault: If staging inputs or registering the result fails
            ConversionFailed: If the converter raises
        """
        sequence_bytes, sequence_name = sequence
        annotation_bytes, annotation_name = annotation

        staged = []
        output_path = self._store.layout.temp_path(f"artifact-{uuid.uuid4().hex}")
        try:
            sequence_path = self._store.put(sequence_bytes, sequence_name)
            staged.append(sequence_path)
            annotation_path = self._store.put(annotation_bytes, annotation_name)
            staged.append(annotation_path)

            try:
                artifact = self._converter.convert(sequence_path, annotation_path, options)
                artifact.write_to_file(output_path)
            except StorageError:
                raise
            except Exception as e:
                raise ConversionFailed(f"Conversion of {sequence_name} failed: {e}") from e

            object_id = self._store.register(
                output_path, sequence_name, owner_tag=owner_tag, retention=retention
            )
        finally:
            self._cleanup(staged, output_path)

        record = self._store.get_metadata(object_id)
        if record is None:
            raise StorageFault(f"Registered artifact {object_id} has no readable metadata")

        hours = int(record.time_to_expiry(record.created_at).total_seconds() // 3600)
        logger.info(f"Converted {sequence_name} + {annotation_name} into {object_id}")
        return ConversionOutcome(
            id=object_id,
            download_path=record.download_path,
            expires_at=record.expires_at,
            message=f"Conversion successful. File will be available for {hours} hours.",
        )

    def _cleanup(self, staged: list, output_path: Path) -> None:
        for path in staged:
            try:
                self._store.discard(path)
            except StorageFault as e:
                logger.warning(f"Could not discard staged input {Path(path).name}: {e}")
        try:
            output_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temporary artifact {output_path.name}: {e}")
