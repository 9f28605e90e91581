from __future__ import annotations

import collections
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from switchboard.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from switchboard.core.events.stats import StatsCounter


EventHandler = Callable[[BaseEvent], None]


class EventBusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    keep_recent: int = Field(default=200, ge=10, le=10_000)


@dataclass
class _Sub:
    event_type: str
    handler: EventHandler
    priority: int


class EventBus:
    """
    In-process change notification for account state.

    - publish delivers synchronously, on the caller's event loop, in priority order
    - a publish from inside a handler is queued and delivered after the current event
    - handler failures are isolated (caught, counted) and re-emitted as error events
    """

    def __init__(self, *, cfg: Optional[EventBusConfig] = None, logger=None, error_reporter=None):
        self.cfg = cfg or EventBusConfig()
        self.logger = logger
        self.error_reporter = error_reporter

        self._subs: List[_Sub] = []
        self._stats = StatsCounter()
        self._pending: Deque[BaseEvent] = collections.deque()
        self._delivering = False
        self._recent_events: Deque[Dict[str, Any]] = collections.deque(maxlen=int(self.cfg.keep_recent))

    def enabled(self) -> bool:
        return bool(self.cfg.enabled)

    def subscribe(self, event_type: str, handler: EventHandler, priority: int = 50) -> None:
        """
        event_type supports:
        - exact match ("accounts.pointer.changed")
        - prefix match ("accounts.registry.*")
        - wildcard all ("*")
        """
        if not callable(handler):
            raise ValueError("handler must be callable")
        self._subs.append(_Sub(event_type=str(event_type), handler=handler, priority=int(priority)))
        self._subs.sort(key=lambda s: s.priority)
        self._stats.set_subscribers(len(self._subs))

    def unsubscribe(self, handler: EventHandler) -> int:
        keep = [s for s in self._subs if s.handler is not handler]
        removed = len(self._subs) - len(keep)
        self._subs = keep
        self._stats.set_subscribers(len(self._subs))
        return removed

    def publish(self, ev: BaseEvent) -> bool:
        if not self.cfg.enabled:
            return False
        self._stats.inc_published(ev.event_type)
        self._recent_events.appendleft(ev.model_dump())
        self._pending.append(ev)
        if self._delivering:
            return True
        self._delivering = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._delivering = False
        return True

    def emit(self, event_type: str, source: SourceSubsystem, payload: Optional[Dict[str, Any]] = None, *, trace_id: Optional[str] = None, severity: EventSeverity = EventSeverity.INFO) -> bool:
        return self.publish(BaseEvent(event_type=event_type, source_subsystem=source, payload=payload or {}, trace_id=trace_id, severity=severity))

    def get_stats(self) -> Dict[str, Any]:
        st = self._stats.snapshot()
        return {
            "enabled": self.enabled(),
            "published_total": st.published_total,
            "delivered_total": st.delivered_total,
            "handler_errors_total": st.handler_errors_total,
            "subscribers": st.subscribers,
            "per_type_published": st.per_type_published,
        }

    def list_subscribers(self) -> List[Dict[str, Any]]:
        return [{"event_type": s.event_type, "priority": s.priority, "handler": getattr(s.handler, "__name__", "handler")} for s in self._subs]

    def dump_recent(self, n: int = 50) -> List[Dict[str, Any]]:
        return list(self._recent_events)[: max(1, int(n))]

    # ---- internals ----
    def _deliver(self, ev: BaseEvent) -> None:
        delivered = 0
        for s in list(self._subs):
            if not _match(s.event_type, ev.event_type):
                continue
            delivered += 1
            self._safe_handle(s.handler, ev)
        if delivered:
            self._stats.inc_delivered(delivered)

    def _safe_handle(self, handler: EventHandler, ev: BaseEvent) -> None:
        try:
            handler(ev)
        except Exception as e:  # noqa: BLE001
            self._stats.inc_handler_error(1)
            if self.logger is not None:
                self.logger.warning(f"Event handler {getattr(handler, '__name__', 'handler')} failed for {ev.event_type}: {e}")
            if self.error_reporter is not None:
                try:
                    self.error_reporter.report_exception(e, trace_id=ev.trace_id or "eventbus", subsystem="events", context={"event_type": ev.event_type})
                except Exception:
                    pass
            # avoid recursion storms: failures of error handlers are not re-emitted
            if ev.event_type == "error.raised":
                return
            self.publish(
                BaseEvent(
                    event_type="error.raised",
                    trace_id=ev.trace_id,
                    source_subsystem=SourceSubsystem.events,
                    severity=EventSeverity.ERROR,
                    payload={"handler": getattr(handler, "__name__", "handler"), "event_type": ev.event_type, "error": str(e)[:500]},
                )
            )


def _match(subscribed: str, event_type: str) -> bool:
    if subscribed == "*":
        return True
    if subscribed.endswith(".*"):
        return str(event_type).startswith(subscribed[:-1])
    return subscribed == event_type
