"""
Data models for stored artifacts.

These Pydantic models describe the metadata sidecar persisted next to each
object's content, plus the summary records returned by stats and sweeps.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = [
    "ObjectMetadata",
    "StorageStats",
    "SweepKind",
    "SweepResult",
    "SIDECAR_SCHEMA_VERSION",
    "DOWNLOAD_PATH_PREFIX",
]

SIDECAR_SCHEMA_VERSION = 1
DOWNLOAD_PATH_PREFIX = "/api/v1/files/"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ObjectMetadata(BaseModel):
    """
    Metadata record for one stored object.

    Serialized with camelCase keys into `<id>.meta`. Unknown keys are ignored
    on read, and sidecars written by the earlier service (`uuid`, `clientId`,
    `originalFilename`) are accepted as well.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    schema_version: int = Field(
        default=SIDECAR_SCHEMA_VERSION,
        alias="schemaVersion",
        description="Sidecar schema version",
    )
    id: str = Field(
        ...,
        validation_alias=AliasChoices("id", "uuid"),
        description="Object identity (UUID4 string)",
    )
    owner_tag: Optional[str] = Field(
        default=None,
        alias="ownerTag",
        validation_alias=AliasChoices("ownerTag", "owner_tag", "clientId"),
        description="Caller-supplied tenant/client tag",
    )
    original_name: str = Field(
        ...,
        alias="originalName",
        validation_alias=AliasChoices("originalName", "original_name", "originalFilename"),
        description="Producer-supplied name, used only as the download filename",
    )
    created_at: datetime = Field(
        ...,
        alias="createdAt",
        validation_alias=AliasChoices("createdAt", "created_at"),
        description="UTC registration time",
    )
    expires_at: datetime = Field(
        ...,
        alias="expiresAt",
        validation_alias=AliasChoices("expiresAt", "expires_at"),
        description="UTC time after which the object may be reclaimed",
    )

    @field_validator("created_at", "expires_at", mode="before")
    @classmethod
    def parse_component_list(cls, v: Any) -> Any:
        """
        Accept timestamps written as `[year, month, day, hour, minute, second, nanos]`.

        Older sidecars store local date-times in that array form; trailing
        zero seconds and nanoseconds may be omitted.
        """
        if not isinstance(v, (list, tuple)):
            return v
        if not 3 <= len(v) <= 7 or not all(isinstance(part, int) and not isinstance(part, bool) for part in v):
            raise ValueError(f"Invalid timestamp component list: {v!r}")
        parts = list(v) + [0] * (7 - len(v))
        year, month, day, hour, minute, second, nanos = parts
        return datetime(year, month, day, hour, minute, second, nanos // 1000)

    @field_validator("created_at", "expires_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def check_expiry_order(self) -> ObjectMetadata:
        """Ensure expires_at is not before created_at."""
        if self.expires_at < self.created_at:
            raise ValueError(
                f"expiresAt ({self.expires_at.isoformat()}) precedes createdAt ({self.created_at.isoformat()})"
            )
        return self

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the retention window has elapsed."""
        return self.expires_at < (now or utcnow())

    def time_to_expiry(self, now: Optional[datetime] = None) -> timedelta:
        """Remaining retention; zero when already expired."""
        remaining = self.expires_at - (now or utcnow())
        return max(remaining, timedelta(0))

    def owned_by(self, owner_tag: Optional[str]) -> bool:
        """Whether `owner_tag` may access this object (untagged objects are public)."""
        return self.owner_tag is None or self.owner_tag == owner_tag

    @property
    def download_path(self) -> str:
        """Path the request layer serves this object's content from."""
        return f"{DOWNLOAD_PATH_PREFIX}{self.id}"

    def to_sidecar(self) -> dict:
        """Sidecar document (camelCase keys, ISO-8601 timestamps)."""
        return self.model_dump(mode="json", by_alias=True)


class StorageStats(BaseModel):
    """Point-in-time usage of the storage root."""
    object_count: int = Field(..., ge=0, description="Number of metadata sidecars")
    total_bytes: int = Field(..., ge=0, description="Bytes used by all files under the root")
    cache_entry_count: int = Field(..., ge=0, description="Metadata records currently cached")


class SweepKind(str, Enum):
    """Reconciliation sweep kinds."""
    EXPIRY = "expiry"
    ORPHAN = "orphan"


class SweepResult(BaseModel):
    """Outcome of one expiry or orphan sweep."""
    kind: SweepKind = Field(..., description="Which sweep produced this result")
    candidates: int = Field(default=0, ge=0, description="Objects or files considered for removal")
    reclaimed: int = Field(default=0, ge=0, description="Objects or files removed")
    failed: int = Field(default=0, ge=0, description="Candidates whose removal failed")
    dangling_sidecars: int = Field(default=0, ge=0, description="Sidecars with no content (orphan sweep only)")
    temp_files_reclaimed: int = Field(
        default=0, ge=0, description="Abandoned temp files removed (orphan sweep only)"
    )
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = Field(default=None)

    @property
    def is_noop(self) -> bool:
        """True when the sweep found nothing to do."""
        return self.candidates == 0 and self.temp_files_reclaimed == 0
