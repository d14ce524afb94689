"""
Error kinds raised by the live store.

Everything the core raises on purpose derives from `LiveStoreError`, so callers
can catch the whole family at once. `DuplicateKeyError` is the one engine-level
error: storage adaptors raise it and the core translates it.
"""


class LiveStoreError(Exception):
    """Base class for all live store errors."""


class AlreadyExists(LiveStoreError):
    """A stream was created twice."""


class NotFound(LiveStoreError, LookupError):
    """A snapshot or action does not exist."""


class ConcurrencyConflict(LiveStoreError, ValueError):
    """A snapshot save did not match the expected prior sequence number."""


class DuplicateSequence(LiveStoreError):
    """An action with the same stream and sequence number is already stored."""


class NotConnected(LiveStoreError):
    """The store handle is not connected, or has been closed."""


class StoreConnectionError(LiveStoreError, ConnectionError):
    """The storage engine could not be reached."""


class DuplicateKeyError(Exception):
    """Raised by a collection when an insert collides with an existing key."""
