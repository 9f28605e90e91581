from __future__ import annotations

import copy
from typing import Generic, TypeVar

from switchboard.core.storage.store import KeyValueStore


T = TypeVar("T")


class PersistedValue(Generic[T]):
    """
    Live view over one store key.

    Reads return the in-memory value (mutations are visible immediately);
    `commit()` writes it back. Assigning `.value` commits.
    """

    def __init__(self, store: KeyValueStore, key: str, default: T):
        self.store = store
        self.key = key
        stored = store.get(key, None)
        self._value: T = copy.deepcopy(default) if stored is None else stored

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new: T) -> None:
        self._value = new
        self.commit()

    def commit(self) -> None:
        self.store.set(self.key, self._value)
