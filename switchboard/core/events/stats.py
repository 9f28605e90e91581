from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict


@dataclass
class EventBusStats:
    published_total: int = 0
    delivered_total: int = 0
    handler_errors_total: int = 0
    subscribers: int = 0
    per_type_published: Dict[str, int] = field(default_factory=dict)


class StatsCounter:
    def __init__(self) -> None:
        self._stats = EventBusStats()

    def snapshot(self) -> EventBusStats:
        return replace(self._stats, per_type_published=dict(self._stats.per_type_published))

    def inc_published(self, event_type: str) -> None:
        self._stats.published_total += 1
        self._stats.per_type_published[event_type] = int(self._stats.per_type_published.get(event_type, 0) + 1)

    def inc_delivered(self, n: int = 1) -> None:
        self._stats.delivered_total += int(n)

    def inc_handler_error(self, n: int = 1) -> None:
        self._stats.handler_errors_total += int(n)

    def set_subscribers(self, n: int) -> None:
        self._stats.subscribers = int(n)
