from typing import Any
import logging

import pydantic

from .censor import KEY_FIELD, censor
from .exceptions import DuplicateKeyError, DuplicateSequence, NotFound
from .keys import action_key
from .models import METADATA_FIELD, ActionMetadata, read_metadata
from .protocols import Document, DocumentCollection


def restore_action(document: Document) -> Document:
    """Censors a stored action and turns its metadata back into Python values."""
    action = censor(document)
    metadata = action.get(METADATA_FIELD)
    if metadata is not None:
        action[METADATA_FIELD] = ActionMetadata.model_validate(metadata).model_dump()
    return action


class ActionLog:
    """
    The append-only log of actions. Sequence numbers are chosen by the caller;
    the unique storage key derived from (stream, sequence number) makes sure
    only one writer can claim each number.
    """

    def __init__(self, collection: DocumentCollection):
        self.collection = collection

    async def save_action(self, action: Document) -> Document:
        """
        Appends `action` to its stream's log and returns the stored action
        (censored), with its timestamp filled in if the caller left it out.
        """
        metadata = read_metadata(action, ActionMetadata)
        key = action_key(metadata.stream_id, metadata.sequence_number)
        document = {
            **action,
            KEY_FIELD: key,
            METADATA_FIELD: metadata.model_dump(mode="json"),
        }
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise DuplicateSequence(
                f"Stream {metadata.stream_id!r} already has an action "
                f"with sequence number {metadata.sequence_number}"
            ) from e
        logging.debug(f"Saved action {metadata.sequence_number} of stream {metadata.stream_id!r}")
        return {**censor(action), METADATA_FIELD: metadata.model_dump()}

    async def get_action(self, stream_id: Any, sequence_number: int) -> Document:
        try:
            key = action_key(stream_id, sequence_number)
        except pydantic.ValidationError:
            key = None
        document = await self.collection.find_one(key) if key is not None else None
        if document is None:
            raise NotFound(
                f"No action for stream ID {stream_id!r} and sequence number {sequence_number!r}"
            )
        return restore_action(document)
