"""세션 이벤트 버스 테스트"""

import asyncio
import json

import pytest

from playmanity.errors import TransportError
from playmanity.events import EventBus, SessionEventType, create_api_error_event, create_state_changed_event


def test_state_changed_event_to_dict():
    data = create_state_changed_event(True).to_dict()
    assert data["type"] == "session_state_changed"
    assert data["is_valid"] is True
    assert "timestamp" in data


def test_api_error_event_to_json():
    event = create_api_error_event("heartbeat", TransportError("down"))
    data = json.loads(event.to_json())
    assert data["context"] == "heartbeat"
    assert data["error"] == "down"
    assert data["error_type"] == "TransportError"
    assert event.is_valid is None


def test_callbacks_receive_positional_args():
    bus = EventBus()
    states, errors = [], []
    bus.on_session_state_changed(states.append)
    bus.on_api_error(lambda context, error: errors.append((context, error)))

    error = TransportError("boom")
    bus.emit_state_changed(True)
    bus.emit_api_error("init_session", error)

    assert states == [True]
    assert errors == [("init_session", error)]


def test_unsubscribe():
    bus = EventBus()
    received = []
    unsubscribe = bus.on_session_state_changed(received.append)
    assert bus.get_subscriber_count() == 1

    unsubscribe()
    bus.emit_state_changed(False)

    assert received == []
    assert bus.get_subscriber_count() == 0
    assert bus.unsubscribe(SessionEventType.SESSION_STATE_CHANGED, received.append) is False


def test_callback_exception_does_not_propagate():
    bus = EventBus()
    received = []

    def broken(is_valid):
        raise RuntimeError("callback failure")

    bus.on_session_state_changed(broken)
    bus.on_session_state_changed(received.append)
    bus.emit_state_changed(True)

    assert received == [True]


@pytest.mark.asyncio
class TestEventBusAsync:
    """비동기 콜백과 스트림 구독 테스트"""

    async def test_async_callback_is_awaited_by_drain(self):
        bus = EventBus()
        received = []

        async def on_change(is_valid):
            await asyncio.sleep(0)
            received.append(is_valid)

        bus.on_session_state_changed(on_change)
        bus.emit_state_changed(True)
        await bus.drain()

        assert received == [True]

    async def test_stream_receives_events_until_closed(self):
        bus = EventBus()
        received = []

        async def consume():
            async for event in bus.stream("test-sub"):
                received.append(event)

        consumer = asyncio.create_task(consume())
        # 스트림은 반복이 시작될 때 등록됨
        while bus.get_subscriber_count() == 0:
            await asyncio.sleep(0)

        bus.emit_state_changed(True)
        bus.emit_api_error("heartbeat", TransportError("x"))
        await asyncio.sleep(0)
        bus.close_streams()
        await asyncio.wait_for(consumer, timeout=1.0)

        assert [event.type for event in received] == [
            SessionEventType.SESSION_STATE_CHANGED,
            SessionEventType.API_ERROR
        ]
        assert bus.get_subscriber_count() == 0
