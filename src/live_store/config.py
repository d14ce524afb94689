"""
Configuration for a live store.

A `StoreConfig` can be built directly or validated from a plain dict, which is
how most callers pass it in. The `url` picks the storage backend; only SQLite
is supported.
"""
import urllib.parse

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    url: str = "sqlite://"
    action_collection: str = "actions"
    snapshot_collection: str = "snapshots"
    polling_interval: float = Field(default=0.2, gt=0)
    cache_size_kib: int = -16384  # 16MB
    busy_timeout_ms: int = Field(default=5000, ge=0)

    @property
    def scheme(self) -> str:
        return self.url.split("://", 1)[0] if "://" in self.url else ""

    @property
    def db_path(self) -> str:
        """The SQLite database path named by `url`, or `:memory:`."""
        if self.scheme != "sqlite":
            raise ValueError(f"Unsupported scheme: {self.scheme}. Only 'sqlite' is supported.")
        db_path = urllib.parse.urlparse(self.url).path
        if not db_path or db_path == "/":
            return ":memory:"
        # sqlite:///relative.db parses to "/relative.db"; sqlite:////abs.db to "//abs.db".
        if db_path.startswith("//"):
            return db_path[1:]
        return db_path[1:] if db_path.startswith("/") else db_path
