"""
Content-addressed storage keys.

A stream identifier can be any JSON-serializable value, so instead of using it
as a primary key directly it is serialized canonically and hashed. Two values
that are structurally equal always produce the same key, regardless of dict
insertion order. The metadata models store stream ids in that same canonical
form, so a key derived from a stored document matches the caller's key.
"""
import hashlib
import json
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import Field, TypeAdapter

# Fixed width, so that stored timestamps sort lexicographically in time order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_sequence_number = TypeAdapter(Annotated[int, Field(ge=0)])


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    raise TypeError(f"Object of type {type(value).__name__} cannot be used in a storage key")


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_default)


def canonical_value(value: Any) -> Any:
    """`value` as it reads back from its canonical JSON form (datetimes become strings, tuples lists)."""
    return json.loads(canonical_json(value))


def derive_key(value: Any) -> str:
    """Returns the hex SHA-256 digest of the canonical JSON form of `value`."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def action_key(stream_id: Any, sequence_number: int) -> str:
    """
    The key of a single action: the digest of its (stream, sequence number) pair.
    The sequence number is validated as a non-negative int first, so `1.0` and `1`
    address the same action.
    """
    sequence_number = _sequence_number.validate_python(sequence_number)
    return derive_key({"stream_id": stream_id, "sequence_number": sequence_number})
