from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from live_store.config import StoreConfig
from live_store.store import LiveStore
from .engine import SQLiteEngine


def sqlite_engine(config: StoreConfig) -> SQLiteEngine:
    return SQLiteEngine(
        config.db_path,
        polling_interval=config.polling_interval,
        cache_size_kib=config.cache_size_kib,
        busy_timeout_ms=config.busy_timeout_ms,
    )


@asynccontextmanager
async def open_store(config: StoreConfig | Dict | None = None) -> AsyncIterator[LiveStore]:
    """
    Opens a `LiveStore` backed by the SQLite database named in `config["url"]`
    and closes it, live feed included, when the context exits.

    With no url, the store lives in a private in-memory database.
    """
    if not isinstance(config, StoreConfig):
        config = StoreConfig.model_validate(config or {})
    store = LiveStore(sqlite_engine(config), config)
    await store.connect()
    try:
        yield store
    finally:
        await store.close()
