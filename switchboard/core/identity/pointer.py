from __future__ import annotations

from typing import Optional

from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.storage import KeyValueStore, PersistedValue


class ActivePointer:
    """Persisted handle (or subject id) of the selected identity; empty means none selected."""

    def __init__(self, store: KeyValueStore, key: str, *, bus: Optional[EventBus] = None, initial: str = ""):
        self._value = PersistedValue[str](store, key, initial)
        self.bus = bus

    def get(self) -> str:
        return str(self._value.value or "")

    def set(self, value: Optional[str]) -> None:
        new = str(value or "")
        old = self.get()
        if new == old:
            return
        self._value.value = new
        if self.bus is not None:
            self.bus.emit("accounts.pointer.changed", SourceSubsystem.pointer, {"from": old, "to": new})

    def clear(self) -> None:
        self.set("")
