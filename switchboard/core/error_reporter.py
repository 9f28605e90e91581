from __future__ import annotations

import json
import os
import threading
import time
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional

from switchboard.core.errors import (
    AdvisoryFetchError,
    ConfigError,
    OAuthClientError,
    StorageError,
    SwitchboardError,
)
from switchboard.core.events.redaction import redact


ADVISORY_SUBSYSTEMS = {"instances", "nodeinfo", "preferences", "push"}


@dataclass
class ErrorReporterConfig:
    include_tracebacks: bool = False


class ErrorReporter:
    """
    Appends normalized, redacted error entries to a JSONL file.

    Never raises from write paths that callers treat as best-effort.
    """

    def __init__(self, *, path: str = os.path.join("logs", "errors.jsonl"), cfg: Optional[ErrorReporterConfig] = None):
        self.path = path
        self.cfg = cfg or ErrorReporterConfig()
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def report_exception(self, exc: BaseException, *, trace_id: str, subsystem: str, context: Optional[Dict[str, Any]] = None) -> SwitchboardError:
        err = normalize_exception(exc, subsystem=subsystem, context=context or {})
        self.write_error(err, trace_id=trace_id, subsystem=subsystem, internal_exc=exc)
        return err

    def write_error(self, err: SwitchboardError, *, trace_id: str, subsystem: str, internal_exc: Optional[BaseException] = None) -> None:
        entry: Dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "trace_id": trace_id,
            "subsystem": subsystem,
            "error_code": err.code,
            "severity": err.severity.value,
            "recoverable": bool(err.recoverable),
            "user_message": err.user_message,
            "safe_context": redact(err.context or {}),
        }
        if self.cfg.include_tracebacks and internal_exc is not None:
            entry["internal_context"] = {"traceback": "".join(traceback.format_exception(type(internal_exc), internal_exc, internal_exc.__traceback__, limit=30))}
        line = json.dumps(entry, ensure_ascii=False, default=str)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def tail(self, n: int = 20) -> list[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                lines = f.readlines()
            return [json.loads(x) for x in lines[-max(1, int(n)) :]]
        except Exception:
            return []


def normalize_exception(exc: BaseException, *, subsystem: str, context: Dict[str, Any]) -> SwitchboardError:
    if isinstance(exc, SwitchboardError):
        return exc

    msg = str(exc)
    ctx = dict(context or {})

    if subsystem == "config":
        return ConfigError("Configuration error.", error=msg, **ctx)
    if subsystem == "storage":
        return StorageError("Local storage error.", error=msg, **ctx)
    if subsystem == "oauth":
        return OAuthClientError("Sign-in service is unavailable.", error=msg, **ctx)
    if subsystem == "login":
        return SwitchboardError(code="login_failed", user_message="Could not sign in to this server.", context=dict(ctx, error=msg))
    if subsystem in ADVISORY_SUBSYSTEMS:
        return AdvisoryFetchError("Optional data could not be fetched.", error=msg, **ctx)

    return SwitchboardError(code="unknown_error", user_message="Something went wrong.", context=dict(ctx, error=msg))


def note_advisory_failure(
    exc: BaseException,
    *,
    subsystem: str,
    logger=None,
    error_reporter: Optional[ErrorReporter] = None,
    trace_id: str = "advisory",
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a swallowed failure of optional enrichment data. Never raises."""
    if logger is not None:
        logger.warning(f"{subsystem}: optional fetch failed: {exc}")
    if error_reporter is not None:
        try:
            error_reporter.report_exception(exc, trace_id=trace_id, subsystem=subsystem, context=context or {})
        except Exception:
            pass
