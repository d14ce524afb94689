from typing import Any, Dict
import logging

from .censor import KEY_FIELD, censor
from .exceptions import AlreadyExists, ConcurrencyConflict, DuplicateKeyError, NotFound
from .keys import derive_key
from .models import METADATA_FIELD, SnapshotMetadata, read_metadata
from .protocols import Document, DocumentCollection


class SnapshotStore:
    """
    Keeps the latest derived state of each stream, one document per stream.

    Snapshots are versioned by the `sequence_number` in their metadata block.
    `save_snapshot` is a compare-and-swap on that number: the caller passes the
    next number and the store only accepts it if the stored one is exactly one less.
    """

    def __init__(self, collection: DocumentCollection):
        self.collection = collection

    async def create_stream(self, stream_id: Any, initial_state: Dict[str, Any] | None = None):
        key = derive_key(stream_id)
        if await self.collection.find_one(key) is not None:
            raise AlreadyExists(f"State already exists for stream ID {stream_id!r}")

        metadata = SnapshotMetadata(stream_id=stream_id, sequence_number=0)
        snapshot = {
            **(initial_state or {}),
            KEY_FIELD: key,
            METADATA_FIELD: metadata.model_dump(mode="json"),
        }
        try:
            await self.collection.insert_one(snapshot)
        except DuplicateKeyError as e:
            # Another writer created the stream between the lookup and the insert.
            raise AlreadyExists(f"State already exists for stream ID {stream_id!r}") from e
        logging.info(f"Created stream {stream_id!r}")

    async def get_snapshot(self, stream_id: Any) -> Document:
        snapshot = await self.collection.find_one(derive_key(stream_id))
        if snapshot is None:
            raise NotFound(f"No state for stream ID {stream_id!r}")
        return censor(snapshot)

    async def save_snapshot(self, snapshot: Document):
        """
        Replaces the stored snapshot if its sequence number is one less than the
        one carried by `snapshot`.

        Raises:
            ConcurrencyConflict: the stored snapshot has moved on (or never existed);
                re-read it, recompute and try again.
        """
        metadata = read_metadata(snapshot, SnapshotMetadata)
        key = derive_key(metadata.stream_id)
        snapshot_to_save = {
            **snapshot,
            KEY_FIELD: key,
            METADATA_FIELD: metadata.model_dump(mode="json"),
        }
        updated = await self.collection.update_one(
            {KEY_FIELD: key, f"{METADATA_FIELD}.sequence_number": metadata.sequence_number - 1},
            snapshot_to_save,
        )
        if updated == 0:
            raise ConcurrencyConflict(
                f"Concurrency conflict: no snapshot of stream {metadata.stream_id!r} "
                f"at sequence number {metadata.sequence_number - 1}"
            )

    async def delete_stream(self, stream_id: Any) -> bool:
        """Deletes the stream's snapshot. Its actions are left in the action log."""
        deleted = await self.collection.delete_one(derive_key(stream_id))
        if deleted:
            logging.info(f"Deleted stream {stream_id!r}")
        return bool(deleted)
