from .engine import SQLiteEngine
from .collection import SQLiteCollection
from .factory import open_store, sqlite_engine

__all__ = ["SQLiteEngine", "SQLiteCollection", "open_store", "sqlite_engine"]
