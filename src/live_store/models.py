"""
This module defines the reserved metadata blocks carried by stored documents.

Snapshots and actions are plain dicts of application fields; the only part the
store understands is the block under `METADATA_FIELD`. Pydantic validates that
block on every write, so a malformed one fails loudly at the call site.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .keys import canonical_value, format_timestamp

METADATA_FIELD = "meta"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    stream_id: Any
    sequence_number: int = Field(ge=0)

    @field_validator("stream_id")
    @classmethod
    def normalize_stream_id(cls, value: Any) -> Any:
        return canonical_value(value)


class ActionMetadata(SnapshotMetadata):
    timestamp: datetime = Field(default_factory=utcnow)

    @field_serializer("timestamp", when_used="json")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


def read_metadata(document: Dict[str, Any], model: type[SnapshotMetadata]) -> SnapshotMetadata:
    """Validates the metadata block of `document`, raising if it is missing or malformed."""
    return model.model_validate(document.get(METADATA_FIELD))
