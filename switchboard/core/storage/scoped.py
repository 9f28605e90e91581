from __future__ import annotations

from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.identity.models import Identity
from switchboard.core.identity.state import AccountState
from switchboard.core.storage.persisted import PersistedValue
from switchboard.core.storage.store import KeyValueStore


T = TypeVar("T", bound=Dict[str, Any])

ANONYMOUS_BUCKET_ID = "[anonymous]"


class ScopedBucket(Generic[T]):
    """
    The current account's slice of one key family.

    `value` re-resolves against the current identity on every access, so a
    held bucket follows account switches.
    """

    def __init__(self, manager: "ScopedStorageManager", family: str, backing: PersistedValue[Dict[str, Any]], initializer: Callable[[], T]):
        self._manager = manager
        self.family = family
        self._backing = backing
        self._initializer = initializer

    @property
    def value(self) -> T:
        return self._manager._resolve(self)

    def update(self, **fields: Any) -> T:
        current = self.value
        current.update(fields)
        self._backing.commit()
        return current

    def replace(self, new: T) -> None:
        self._backing.value[self._manager.bucket_id()] = dict(new)
        self._backing.commit()

    def commit(self) -> None:
        self._backing.commit()

    def entries(self) -> Dict[str, Any]:
        return dict(self._backing.value)


class ScopedStorageManager:
    """
    Per-account namespaces inside shared persisted maps.

    One `ScopedBucket` per key family for the process lifetime, tracked in an
    explicit table. Bucket ids are `user@webDomain` (or the OAuth subject);
    data written by older versions under `user@apiServer` is moved to the new
    id on first resolution.
    """

    def __init__(self, store: KeyValueStore, state: AccountState, *, bus: Optional[EventBus] = None, logger=None, anonymous_id: str = ANONYMOUS_BUCKET_ID):
        self.store = store
        self.state = state
        self.bus = bus
        self.logger = logger
        self.anonymous_id = anonymous_id
        self._buckets: Dict[str, ScopedBucket[Any]] = {}

    def bucket_for(self, family: str, initializer: Callable[[], T]) -> ScopedBucket[T]:
        bucket = self._buckets.get(family)
        if bucket is None:
            backing = PersistedValue[Dict[str, Any]](self.store, family, {})
            bucket = ScopedBucket(self, family, backing, initializer)
            self._buckets[family] = bucket
        self._resolve(bucket)
        return bucket  # type: ignore[return-value]

    def families(self) -> List[str]:
        return list(self._buckets.keys())

    def bucket_id(self, identity: Optional[Identity] = None) -> str:
        if identity is None:
            identity = self.state.current_user
        return identity.storage_id if identity is not None else self.anonymous_id

    @staticmethod
    def legacy_id(bucket_id: str, server: str) -> Optional[str]:
        username, sep, web_domain = bucket_id.partition("@")
        if not sep or not web_domain or not server or server == web_domain:
            return None
        return f"{username}@{server}"

    def clear_all(self, identity: Identity) -> int:
        bucket_id = self.bucket_id(identity)
        cleared = 0
        for bucket in self._buckets.values():
            entries = bucket._backing.value
            if bucket_id in entries:
                del entries[bucket_id]
                bucket._backing.commit()
                cleared += 1
        if cleared and self.bus is not None:
            self.bus.emit("accounts.storage.cleared", SourceSubsystem.storage, {"bucket_id": bucket_id, "families": cleared})
        return cleared

    def _resolve(self, bucket: ScopedBucket[T]) -> T:
        # no await in here: detecting a legacy id and moving it is one step
        bucket_id = self.bucket_id()
        entries = bucket._backing.value
        if bucket_id not in entries:
            legacy = self.legacy_id(bucket_id, self.state.current_server)
            if legacy is not None and legacy in entries:
                entries[bucket_id] = entries.pop(legacy)
                if self.logger:
                    self.logger.info(f"Migrated {bucket.family} bucket {legacy} -> {bucket_id}")
                if self.bus is not None:
                    self.bus.emit("accounts.storage.migrated", SourceSubsystem.storage, {"family": bucket.family, "from": legacy, "to": bucket_id})
            existing = entries.get(bucket_id)
            merged = dict(bucket._initializer())
            if isinstance(existing, dict):
                merged.update(existing)
            entries[bucket_id] = merged
            bucket._backing.commit()
        return entries[bucket_id]
