"""
In-process account-state events.

Registry, pointer, storage and coordinator changes are published here so
consumers re-derive state instead of holding snapshots.
"""

from switchboard.core.events.bus import EventBus, EventBusConfig
from switchboard.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from switchboard.core.events.redaction import redact

__all__ = [
    "redact",
    "BaseEvent",
    "EventSeverity",
    "SourceSubsystem",
    "EventBus",
    "EventBusConfig",
]
