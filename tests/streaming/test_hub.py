"""Tests for deskpilot.streaming — fan-out hub and event models"""

import pytest

from deskpilot.streaming import (
    EventType,
    FanOutHub,
    RealtimeEvent,
    notification_event,
    ping_event,
)


class Recorder:
    def __init__(self, fail=False):
        self.received = []
        self.fail = fail

    async def __call__(self, message):
        if self.fail:
            raise ConnectionError("socket closed")
        self.received.append(message)


class TestEvents:

    def test_wire_shape(self):
        event = RealtimeEvent(EventType.SCHEDULED_RESULT, {"tool": "notify"}, timestamp=123)
        assert event.to_dict() == {"type": "scheduled_result", "payload": {"tool": "notify"}, "timestamp": 123}
        assert RealtimeEvent.from_dict(event.to_dict()) == event

    def test_helpers(self):
        assert notification_event("T", "M").payload == {"title": "T", "message": "M"}
        assert ping_event().to_dict()["payload"] == {"pong": True}

    def test_timestamp_in_milliseconds(self):
        assert notification_event("T", "M").timestamp > 1_000_000_000_000


class TestFanOutHub:

    @pytest.mark.asyncio
    async def test_send_to_session_listeners_only(self):
        hub = FanOutHub()
        a1, a2, b = Recorder(), Recorder(), Recorder()
        hub.register("a", a1)
        hub.register("a", a2)
        hub.register("b", b)

        delivered = await hub.send("a", notification_event("T", "M"))

        assert delivered == 2
        assert len(a1.received) == len(a2.received) == 1
        assert b.received == []

    @pytest.mark.asyncio
    async def test_no_listeners(self):
        assert await FanOutHub().send("a", ping_event()) == 0

    @pytest.mark.asyncio
    async def test_failing_listener_is_dropped(self):
        hub = FanOutHub()
        good, bad = Recorder(), Recorder(fail=True)
        hub.register("a", good)
        hub.register("a", bad)

        assert await hub.send("a", ping_event()) == 1
        assert hub.count("a") == 1
        assert await hub.send("a", ping_event()) == 1
        assert len(good.received) == 2

    @pytest.mark.asyncio
    async def test_broadcast(self):
        hub = FanOutHub()
        a, b = Recorder(), Recorder()
        hub.register("a", a)
        hub.register("b", b)
        assert await hub.broadcast(notification_event("T", "M")) == 2

    def test_unregister(self):
        hub = FanOutHub()
        listener = Recorder()
        hub.register("a", listener)
        assert hub.unregister("a", listener) is True
        assert hub.unregister("a", listener) is False
        assert hub.count("a") == 0

    def test_clear(self):
        hub = FanOutHub()
        hub.register("a", Recorder())
        hub.clear()
        assert hub.count("a") == 0
