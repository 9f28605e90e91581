from __future__ import annotations

import copy
import os
from typing import Any, Dict, Iterable, Optional

from switchboard.core.config.io import atomic_write_json, read_json_file, recover_from_corrupt
from switchboard.core.errors import StorageError


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dict: `override` merged over `base`, recursing into nested dicts."""
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


class KeyValueStore:
    """
    Persisted string-keyed store of JSON-serializable values.

    get() returns a detached copy; callers write changes back with set().
    """

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def keys(self) -> Iterable[str]:
        ...

    def has(self, key: str) -> bool:
        return key in set(self.keys())

    def merge(self, key: str, value: Dict[str, Any]) -> Dict[str, Any]:
        current = self.get(key, {})
        if not isinstance(current, dict):
            current = {}
        merged = deep_merge(current, value)
        self.set(key, merged)
        return merged


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[str(key)] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(str(key), None)

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())

    def dump(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


class JsonFileStore(MemoryStore):
    """
    Whole-document JSON store: atomic writes, timestamped backups, corruption recovery.
    """

    def __init__(self, path: str, *, backup_keep: int = 10, logger=None):
        self.path = path
        self.backup_keep = int(backup_keep)
        self.logger = logger
        super().__init__(self._load())

    @property
    def backups_dir(self) -> str:
        return os.path.join(os.path.dirname(self.path) or ".", "backups")

    def set(self, key: str, value: Any) -> None:
        super().set(key, value)
        self._flush()

    def delete(self, key: str) -> None:
        if key not in self._data:
            return
        super().delete(key)
        self._flush()

    def _load(self) -> Dict[str, Any]:
        rr = read_json_file(self.path)
        if rr.ok:
            return rr.data
        if rr.error and rr.error.startswith("corrupt_json"):
            if self.logger:
                self.logger.warning(f"Store file corrupt, recovering: {self.path}")
            return recover_from_corrupt(self.path, self.backups_dir)
        return {}

    def _flush(self) -> None:
        try:
            atomic_write_json(self.path, self._data, self.backups_dir if self.backup_keep > 0 else None, max_backups=self.backup_keep)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError("Could not write local storage.", path=self.path, error=str(e)) from e
