from __future__ import annotations

import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any]
    error: Optional[str] = None
    was_recovered: bool = False


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S", time.gmtime())


def ensure_dirs(*dirs: str) -> None:
    for d in dirs:
        if d:
            os.makedirs(d, exist_ok=True)


def read_json_file(path: str) -> ReadResult:
    if not os.path.exists(path):
        return ReadResult(ok=False, data={}, error="missing")
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            return ReadResult(ok=False, data={}, error="not_object")
        return ReadResult(ok=True, data=obj)
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, data={}, error=f"corrupt_json:{e}")
    except Exception as e:  # noqa: BLE001
        return ReadResult(ok=False, data={}, error=str(e))


def backup_file(path: str, backups_dir: str, *, reason: str, max_backups: int = 10) -> Optional[str]:
    if not os.path.exists(path):
        return None
    ensure_dirs(backups_dir)
    base = os.path.basename(path)
    out = os.path.join(backups_dir, f"{base}.{_ts()}.{time.time_ns() % 1_000_000:06d}.{reason}.json")
    try:
        shutil.copy2(path, out)
    except OSError:
        return None
    _enforce_retention(backups_dir, prefix=f"{base}.", keep=max_backups)
    return out


def _enforce_retention(backups_dir: str, *, prefix: str, keep: int) -> None:
    try:
        items = [os.path.join(backups_dir, f) for f in os.listdir(backups_dir) if f.startswith(prefix) and ".corrupt." not in f]
        items.sort(key=lambda p: os.path.getmtime(p), reverse=True)
        for p in items[max(0, int(keep)) :]:
            try:
                os.remove(p)
            except OSError:
                pass
    except OSError:
        return


def atomic_write_json(path: str, data: Dict[str, Any], backups_dir: Optional[str] = None, *, max_backups: int = 10) -> None:
    ensure_dirs(os.path.dirname(path))
    if backups_dir:
        backup_file(path, backups_dir, reason="prewrite", max_backups=max_backups)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
            try:
                f.flush()
                os.fsync(f.fileno())
            except OSError:
                pass
        os.replace(tmp, path)
    finally:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass


def recover_from_corrupt(path: str, backups_dir: str) -> Dict[str, Any]:
    """
    On corrupt JSON:
    - move the corrupt file to backups/<name>.<ts>.corrupt.json
    - restore the newest readable backup if there is one
    - else return {}
    """
    ensure_dirs(backups_dir)
    base = os.path.basename(path)
    if os.path.exists(path):
        try:
            shutil.move(path, os.path.join(backups_dir, f"{base}.{_ts()}.corrupt.json"))
        except OSError:
            pass
    try:
        candidates = [os.path.join(backups_dir, f) for f in os.listdir(backups_dir) if f.startswith(f"{base}.") and ".corrupt." not in f]
    except OSError:
        candidates = []
    candidates.sort(key=lambda p: os.path.getmtime(p), reverse=True)
    for p in candidates:
        rr = read_json_file(p)
        if rr.ok:
            atomic_write_json(path, rr.data)
            return rr.data
    return {}
