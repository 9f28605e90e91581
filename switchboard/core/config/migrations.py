from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple


Migration = Callable[[Dict[str, Any]], Tuple[Dict[str, Any], bool]]


def migrate_0001(data: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Pre-versioned files kept storage and push settings at the top level:
    {"store_path": ..., "pwa_enabled": ...}. Fold them into their sections.
    """
    out = dict(data or {})
    changed = False
    if "store_path" in out:
        storage = dict(out.get("storage") or {})
        storage.setdefault("path", out.pop("store_path"))
        out["storage"] = storage
        changed = True
    if "pwa_enabled" in out:
        accounts = dict(out.get("accounts") or {})
        accounts.setdefault("pwa_enabled", bool(out.pop("pwa_enabled")))
        out["accounts"] = accounts
        changed = True
    if int(out.get("config_version") or 0) < 1:
        out["config_version"] = 1
        changed = True
    return out, changed


MIGRATIONS: List[Tuple[int, Migration]] = [(1, migrate_0001)]


def run_migrations(data: Dict[str, Any]) -> Tuple[Dict[str, Any], int, List[str]]:
    out = dict(data or {})
    cur_ver = int(out.get("config_version") or 0)
    logs: List[str] = []
    for target_version, fn in MIGRATIONS:
        if int(target_version) <= cur_ver:
            continue
        out, _changed = fn(out)
        out["config_version"] = int(target_version)
        cur_ver = int(target_version)
        logs.append(f"applied config migration {int(target_version):04d}")
    return out, cur_ver, logs
