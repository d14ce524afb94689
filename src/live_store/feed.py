"""
The live feed: turns "an action was appended" into "subscribers were called".

One watch is opened on the action collection when the feed starts. A single
background task consumes it and dispatches every new action, in the order the
engine reports them, to the global subscribers and to the subscribers of the
action's stream. Delivery is best effort and at most once: actions appended
while no feed is running are never redelivered, though they remain readable
through `ActionLog.get_action`.
"""
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List
import asyncio
import inspect
import logging

from .actions import restore_action
from .keys import derive_key
from .models import METADATA_FIELD, utcnow
from .protocols import Document, DocumentCollection

Callback = Callable[[Document], Awaitable[None] | None]


class LiveFeed:
    def __init__(self, collection: DocumentCollection):
        self._collection = collection
        self._global: List[Callback] = []
        self._by_stream: Dict[str, List[Callback]] = defaultdict(list)
        self._task: asyncio.Task | None = None

    async def start(self):
        """Establishes the watch, then starts servicing it in the background."""
        if self._task:
            return
        started_at = utcnow()
        changes = await self._collection.watch({f"{METADATA_FIELD}.timestamp": {"$gt": started_at}})
        self._task = asyncio.create_task(self._follow(changes))
        logging.info(f"Live feed started, watching actions after {started_at.isoformat()}")

    async def stop(self):
        """Stops the watch task and drops every subscription."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logging.info("Live feed stopped")
        self._global.clear()
        self._by_stream.clear()

    async def _follow(self, changes):
        try:
            async for document in changes:
                await self._dispatch(document)
        finally:
            await changes.aclose()

    async def _dispatch(self, document: Document):
        try:
            action = restore_action(document)
            stream_key = derive_key(action[METADATA_FIELD]["stream_id"])
        except Exception as e:
            logging.warning(f"Live feed skipping malformed action {document!r}: {e}")
            return
        # Copies, so callbacks may subscribe or unsubscribe while being called.
        callbacks = list(self._global) + list(self._by_stream.get(stream_key, ()))
        for callback in callbacks:
            try:
                result = callback(action)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logging.exception(f"Live feed subscriber {callback!r} failed")

    def subscribe(self, callback: Callback) -> Callable[[], None]:
        """Calls `callback` with every new action from every stream."""
        self._global.append(callback)

        def unsubscribe():
            if callback in self._global:
                self._global.remove(callback)

        return unsubscribe

    def subscribe_to_stream(self, stream_id: Any, callback: Callback) -> Callable[[], None]:
        """Calls `callback` with every new action of one stream."""
        stream_key = derive_key(stream_id)
        self._by_stream[stream_key].append(callback)

        def unsubscribe():
            callbacks = self._by_stream.get(stream_key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._by_stream[stream_key]

        return unsubscribe
