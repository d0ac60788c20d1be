"""Key/value store adapters implementing KeyValueStorePort."""

from faultline.adapters.storage.in_memory import InMemoryKeyValueStore
from faultline.adapters.storage.sqlite import SQLiteKeyValueStore

__all__ = ["InMemoryKeyValueStore", "SQLiteKeyValueStore"]
