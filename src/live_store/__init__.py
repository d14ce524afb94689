# live_store package

from .censor import KEY_FIELD, censor
from .config import StoreConfig
from .exceptions import (
    AlreadyExists,
    ConcurrencyConflict,
    DuplicateKeyError,
    DuplicateSequence,
    LiveStoreError,
    NotConnected,
    NotFound,
    StoreConnectionError,
)
from .keys import action_key, derive_key
from .models import METADATA_FIELD, ActionMetadata, SnapshotMetadata
from .store import LiveStore, StoreState
from .adaptors.sqlite import open_store

__all__ = [
    "KEY_FIELD",
    "METADATA_FIELD",
    "ActionMetadata",
    "SnapshotMetadata",
    "StoreConfig",
    "LiveStore",
    "StoreState",
    "open_store",
    "censor",
    "derive_key",
    "action_key",
    "LiveStoreError",
    "AlreadyExists",
    "NotFound",
    "ConcurrencyConflict",
    "DuplicateSequence",
    "NotConnected",
    "StoreConnectionError",
    "DuplicateKeyError",
]
