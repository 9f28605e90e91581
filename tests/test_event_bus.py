from __future__ import annotations

import pytest


def test_publish_subscribe_multiple_subscribers():
    from switchboard.core.events.bus import EventBus
    from switchboard.core.events.models import BaseEvent, SourceSubsystem

    bus = EventBus(logger=None)
    got1 = []
    got2 = []

    bus.subscribe("accounts.pointer.changed", lambda ev: got1.append(ev.event_id), priority=10)
    bus.subscribe("accounts.pointer.changed", lambda ev: got2.append(ev.event_id), priority=20)

    ev = BaseEvent(event_type="accounts.pointer.changed", source_subsystem=SourceSubsystem.pointer, payload={"from": "", "to": "alice@s1"})
    bus.publish(ev)
    assert got1 == [ev.event_id]
    assert got2 == [ev.event_id]


def test_priority_order_and_prefix_match():
    from switchboard.core.events.bus import EventBus
    from switchboard.core.events.models import SourceSubsystem

    bus = EventBus()
    seen = []
    bus.subscribe("accounts.registry.*", lambda ev: seen.append(("late", ev.event_type)), priority=80)
    bus.subscribe("*", lambda ev: seen.append(("all", ev.event_type)), priority=10)
    bus.subscribe("accounts.registry.added", lambda ev: seen.append(("exact", ev.event_type)), priority=50)

    bus.emit("accounts.registry.added", SourceSubsystem.registry, {"size": 1})
    bus.emit("accounts.pointer.changed", SourceSubsystem.pointer)
    assert seen == [
        ("all", "accounts.registry.added"),
        ("exact", "accounts.registry.added"),
        ("late", "accounts.registry.added"),
        ("all", "accounts.pointer.changed"),
    ]


def test_handler_exception_isolated():
    from switchboard.core.events.bus import EventBus
    from switchboard.core.events.models import SourceSubsystem

    bus = EventBus(logger=None)
    ok = {"n": 0}
    errors = []

    def bad(_ev):  # noqa: ANN001
        raise RuntimeError("boom")

    def good(_ev):  # noqa: ANN001
        ok["n"] += 1

    bus.subscribe("accounts.login", bad, priority=10)
    bus.subscribe("accounts.login", good, priority=20)
    bus.subscribe("error.raised", lambda ev: errors.append(ev.payload["event_type"]))
    bus.emit("accounts.login", SourceSubsystem.login, {"acct": "alice@s1"})
    assert ok["n"] == 1
    assert errors == ["accounts.login"]
    assert bus.get_stats()["handler_errors_total"] == 1


def test_publish_from_handler_is_queued_after_current_event():
    from switchboard.core.events.bus import EventBus
    from switchboard.core.events.models import SourceSubsystem

    bus = EventBus()
    order = []

    def first(ev):  # noqa: ANN001
        order.append(ev.event_type)
        if ev.event_type == "a":
            bus.emit("b", SourceSubsystem.registry)

    bus.subscribe("*", first, priority=10)
    bus.subscribe("a", lambda ev: order.append("a-second"), priority=20)
    bus.emit("a", SourceSubsystem.registry)
    assert order == ["a", "a-second", "b"]


def test_payload_redacted_and_json_only():
    from switchboard.core.events.models import BaseEvent, SourceSubsystem

    ev = BaseEvent(event_type="accounts.login", source_subsystem=SourceSubsystem.login, payload={"token": "t1", "nested": {"session": "x"}})
    assert ev.payload["token"] == "***REDACTED***"
    assert ev.payload["nested"]["session"] == "***REDACTED***"

    with pytest.raises(Exception):
        BaseEvent(event_type="x", source_subsystem=SourceSubsystem.login, payload={"obj": object()})
    with pytest.raises(Exception):
        BaseEvent(event_type=" ", source_subsystem=SourceSubsystem.login)


def test_disabled_bus_drops_and_unsubscribe():
    from switchboard.core.events.bus import EventBus, EventBusConfig
    from switchboard.core.events.models import SourceSubsystem

    seen = []
    handler = lambda ev: seen.append(ev.event_type)  # noqa: E731

    bus = EventBus(cfg=EventBusConfig(enabled=False))
    bus.subscribe("*", handler)
    assert bus.emit("x", SourceSubsystem.registry) is False

    bus = EventBus()
    bus.subscribe("*", handler)
    assert bus.list_subscribers()[0]["event_type"] == "*"
    assert bus.unsubscribe(handler) == 1
    bus.emit("x", SourceSubsystem.registry)
    assert seen == []
    assert bus.dump_recent(5)[0]["event_type"] == "x"
