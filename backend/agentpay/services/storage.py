"""
Key-value persistence shared by the group, invoice, schedule and notification services.

Values are JSON-compatible structures (lists and dicts of pydantic dumps).
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage


class NotFoundError(KeyError):
    """A referenced record does not exist."""


def new_id(prefix: str) -> str:
    """Short unique record id with a readable prefix."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class KeyValueStore(ABC):
    """
    Port: where service state lives.

    Services depend only on this interface, so the backing store can be a
    TinyDB file in production and memory in tests.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""
        ...


class TinyDBStore(KeyValueStore):
    """KeyValueStore on a TinyDB table. A None path keeps everything in memory."""

    def __init__(self, db_path: Optional[str] = None):
        if db_path is None:
            self.db = TinyDB(storage=MemoryStorage)
        else:
            self.db = TinyDB(db_path)
        self.table = self.db.table("kv")

    def get(self, key: str, default: Any = None) -> Any:
        Entry = Query()
        doc = self.table.get(Entry.key == key)
        if doc is None:
            return default
        return doc["value"]

    def set(self, key: str, value: Any) -> None:
        Entry = Query()
        self.table.upsert({"key": key, "value": value}, Entry.key == key)

    def delete(self, key: str) -> None:
        Entry = Query()
        self.table.remove(Entry.key == key)

    def keys(self, prefix: str = "") -> list[str]:
        return [doc["key"] for doc in self.table.all() if doc["key"].startswith(prefix)]
