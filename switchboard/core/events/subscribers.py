from __future__ import annotations

import json
import os
import threading

from switchboard.core.events.models import BaseEvent


class EventJsonlSubscriber:
    """
    Appends every event (payload already redacted) to a JSONL file.
    """

    def __init__(self, *, path: str = os.path.join("logs", "events", "account_events.jsonl")):
        self.path = path
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def __call__(self, ev: BaseEvent) -> None:
        line = json.dumps(ev.model_dump(mode="json"), ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")


class LoggingSubscriber:
    def __init__(self, logger) -> None:  # noqa: ANN001
        self.logger = logger

    def __call__(self, ev: BaseEvent) -> None:
        self.logger.debug(f"[{ev.source_subsystem.value}] {ev.event_type}: {ev.payload}")
