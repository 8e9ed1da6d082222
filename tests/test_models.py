"""
Tests for metadata models.

Covers sidecar serialization keys, tolerant parsing and the derived
expiry helpers.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from artifact_store.models import ObjectMetadata, SweepKind, SweepResult

from tests.fakes.fake_clock import T0

OBJECT_ID = "0b7c5f0e-8d4f-4f3a-9a51-6c1f0f7f2b11"


def _record(**overrides) -> ObjectMetadata:
    values = dict(
        id=OBJECT_ID,
        owner_tag="client-a",
        original_name="sample.fasta",
        created_at=T0,
        expires_at=T0 + timedelta(hours=24),
    )
    values.update(overrides)
    return ObjectMetadata(**values)


class TestObjectMetadata:

    def test_sidecar_uses_camel_case_keys(self):
        doc = _record().to_sidecar()
        assert doc == {
            "schemaVersion": 1,
            "id": OBJECT_ID,
            "ownerTag": "client-a",
            "originalName": "sample.fasta",
            "createdAt": "2024-05-01T12:00:00Z",
            "expiresAt": "2024-05-02T12:00:00Z",
        }

    def test_round_trip_through_sidecar_document(self):
        record = _record()
        assert ObjectMetadata.model_validate(record.to_sidecar()) == record

    def test_unknown_fields_ignored(self):
        doc = _record().to_sidecar()
        doc["futureField"] = {"nested": True}
        assert ObjectMetadata.model_validate(doc).id == OBJECT_ID

    def test_legacy_keys_accepted(self):
        """Test sidecars written with the earlier service's key names and array timestamps."""
        doc = {
            "clientId": "client-b",
            "uuid": OBJECT_ID,
            "originalFilename": "legacy.fasta",
            "createdAt": [2024, 5, 1, 12, 0, 0, 123456789],
            "expiresAt": [2024, 5, 2, 12, 0, 0, 123456789],
            "downloadUrl": f"/api/v1/files/{OBJECT_ID}",
            "expired": False,
            "timeToExpiry": "24 hours",
        }
        record = ObjectMetadata.model_validate(doc)
        assert record.id == OBJECT_ID
        assert record.owner_tag == "client-b"
        assert record.original_name == "legacy.fasta"
        assert record.created_at == T0.replace(microsecond=123456)
        assert record.expires_at - record.created_at == timedelta(hours=24)

    def test_array_timestamps_with_trailing_zeros_omitted(self):
        """Test array timestamps where zero seconds and nanoseconds are left out."""
        doc = _record().to_sidecar()
        doc["createdAt"] = [2024, 5, 1, 12, 0]
        doc["expiresAt"] = [2024, 5, 2, 12, 0, 30]
        record = ObjectMetadata.model_validate(doc)
        assert record.created_at == T0
        assert record.expires_at == T0 + timedelta(hours=24, seconds=30)

    def test_invalid_array_timestamps_rejected(self):
        for bad in ([2024], [2024, 13, 1, 0, 0], ["2024", 5, 1, 0, 0], [2024, 5, 1, 0, 0, 0, 0, 0]):
            doc = _record().to_sidecar()
            doc["createdAt"] = bad
            with pytest.raises(ValidationError):
                ObjectMetadata.model_validate(doc)

    def test_naive_timestamps_are_utc(self):
        record = _record(created_at=datetime(2024, 5, 1, 12), expires_at=datetime(2024, 5, 1, 13))
        assert record.created_at.tzinfo is not None
        assert record.created_at == T0

    def test_expiry_before_creation_rejected(self):
        with pytest.raises(ValidationError, match="precedes createdAt"):
            _record(expires_at=T0 - timedelta(seconds=1))

    def test_zero_retention_allowed(self):
        assert _record(expires_at=T0).expires_at == T0

    def test_missing_required_field_rejected(self):
        doc = _record().to_sidecar()
        del doc["originalName"]
        with pytest.raises(ValidationError):
            ObjectMetadata.model_validate(doc)

    def test_is_expired_is_strict(self):
        record = _record()
        assert not record.is_expired(T0 + timedelta(hours=23))
        assert not record.is_expired(record.expires_at)
        assert record.is_expired(record.expires_at + timedelta(microseconds=1))

    def test_time_to_expiry(self):
        record = _record()
        assert record.time_to_expiry(T0) == timedelta(hours=24)
        assert record.time_to_expiry(T0 + timedelta(hours=30)) == timedelta(0)

    def test_download_path(self):
        assert _record().download_path == f"/api/v1/files/{OBJECT_ID}"

    def test_owned_by(self):
        assert _record().owned_by("client-a")
        assert not _record().owned_by("client-b")
        assert _record(owner_tag=None).owned_by("anyone")


class TestSweepResult:

    def test_noop_when_no_candidates(self):
        assert SweepResult(kind=SweepKind.EXPIRY).is_noop
        assert not SweepResult(kind=SweepKind.ORPHAN, candidates=1, reclaimed=1).is_noop
        assert not SweepResult(kind=SweepKind.ORPHAN, temp_files_reclaimed=1).is_noop
