"""
The public handle of the live store.

`LiveStore` ties the snapshot store, the action log and the live feed to one
storage engine and guards them with a small state machine:
`UNCONNECTED -> CONNECTED -> CLOSED`. Every operation requires `CONNECTED`;
`CLOSED` is terminal.
"""
from enum import Enum
from typing import Any, Callable, Dict
import logging

from .actions import ActionLog
from .config import StoreConfig
from .exceptions import NotConnected, StoreConnectionError
from .feed import Callback, LiveFeed
from .protocols import Document, StorageEngine
from .snapshots import SnapshotStore


class StoreState(Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class LiveStore:
    """
    Persists snapshots and actions for many streams and publishes new actions
    to in-process subscribers.

    Use it as an async context manager, or call `connect()` and `close()` yourself.
    """

    def __init__(self, engine: StorageEngine, config: StoreConfig | Dict | None = None):
        self.engine = engine
        self.config = config if isinstance(config, StoreConfig) else StoreConfig.model_validate(config or {})
        self._state = StoreState.UNCONNECTED
        self._snapshots: SnapshotStore | None = None
        self._actions: ActionLog | None = None
        self._feed: LiveFeed | None = None

    @property
    def state(self) -> StoreState:
        return self._state

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        """Opens both collections and starts the live feed."""
        if self._state is StoreState.CONNECTED:
            return
        if self._state is StoreState.CLOSED:
            raise NotConnected("Store has been closed")
        try:
            await self.engine.open()
            action_collection = await self.engine.collection(self.config.action_collection)
            snapshot_collection = await self.engine.collection(self.config.snapshot_collection)
            feed = LiveFeed(action_collection)
            await feed.start()
        except StoreConnectionError:
            await self.engine.close()
            raise
        except OSError as e:
            await self.engine.close()
            raise StoreConnectionError(f"Could not connect to {self.config.url}: {e}") from e
        except Exception:
            await self.engine.close()
            raise

        self._snapshots = SnapshotStore(snapshot_collection)
        self._actions = ActionLog(action_collection)
        self._feed = feed
        self._state = StoreState.CONNECTED
        logging.info(f"Connected to live store at {self.config.url}")

    async def close(self):
        """Stops the live feed and releases the engine. Idempotent."""
        if self._state is StoreState.CLOSED:
            return
        self._state = StoreState.CLOSED
        if self._feed is not None:
            await self._feed.stop()
        await self.engine.close()
        self._snapshots = self._actions = self._feed = None
        logging.info(f"Closed live store at {self.config.url}")

    def _require_connected(self):
        if self._state is not StoreState.CONNECTED:
            raise NotConnected(f"Store is {self._state.value}")

    async def create_stream(self, stream_id: Any, initial_state: Dict[str, Any] | None = None):
        self._require_connected()
        await self._snapshots.create_stream(stream_id, initial_state)

    async def get_snapshot(self, stream_id: Any) -> Document:
        self._require_connected()
        return await self._snapshots.get_snapshot(stream_id)

    async def save_snapshot(self, snapshot: Document):
        self._require_connected()
        await self._snapshots.save_snapshot(snapshot)

    async def delete_stream(self, stream_id: Any) -> bool:
        self._require_connected()
        return await self._snapshots.delete_stream(stream_id)

    async def get_action(self, stream_id: Any, sequence_number: int) -> Document:
        self._require_connected()
        return await self._actions.get_action(stream_id, sequence_number)

    async def save_action(self, action: Document) -> Document:
        self._require_connected()
        return await self._actions.save_action(action)

    def on_new_action(self, callback: Callback) -> Callable[[], None]:
        self._require_connected()
        return self._feed.subscribe(callback)

    def on_new_action_from_stream(self, stream_id: Any, callback: Callback) -> Callable[[], None]:
        self._require_connected()
        return self._feed.subscribe_to_stream(stream_id, callback)
