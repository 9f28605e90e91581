from switchboard.core.storage.persisted import PersistedValue
from switchboard.core.storage.store import JsonFileStore, KeyValueStore, MemoryStore, deep_merge

__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore", "PersistedValue", "deep_merge"]
