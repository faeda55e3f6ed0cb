"""세션 관리자 테스트

스크립트화된 가짜 전송 계층과 축소된 타이밍으로
시작 → 하트비트 → 종료 흐름과 재시도/재시작 규칙을 검증합니다.
"""

import asyncio

import pytest

from conftest import NO_ACTIVE_SESSION_RESPONSE, ScriptedTransport, wait_until
from playmanity.errors import ConfigurationError, ParseError, ServerRejection, TransportError
from playmanity.models import SessionState
from playmanity.sessions import (
    ADVERTISEMENTS_PATH,
    SESSION_END_PATH,
    SESSION_HEARTBEAT_PATH,
    SESSION_INITIATE_PATH,
    SessionManager,
    get_session_manager,
    initialize_session_manager,
    shutdown_session_manager
)


class EventRecorder:
    """세션 이벤트 기록기"""

    def __init__(self, manager: SessionManager):
        self.states = []
        self.errors = []
        manager.events.on_session_state_changed(self.states.append)
        manager.events.on_api_error(lambda context, error: self.errors.append((context, error)))

    def error_contexts(self):
        return [context for context, _ in self.errors]


def heartbeat_loops():
    return [task for task in asyncio.all_tasks()
            if getattr(task.get_coro(), "__name__", "") == "_heartbeat_loop" and not task.done()]


@pytest.mark.asyncio
class TestInitSession:
    """세션 시작 테스트"""

    async def test_requires_token(self, transport, fast_timings):
        manager = SessionManager(transport, **fast_timings)
        with pytest.raises(ConfigurationError):
            await manager.init_session()
        assert transport.calls == []

    async def test_success_starts_heartbeat(self, manager, transport):
        recorder = EventRecorder(manager)

        assert await manager.init_session() is True

        assert manager.is_valid
        assert manager.state is SessionState.ACTIVE
        assert manager.heartbeat_running
        assert recorder.states == [True]
        initiate_calls = transport.calls_to(SESSION_INITIATE_PATH)
        assert len(initiate_calls) == 1
        assert initiate_calls[0].body == {"auth_token": "test-token-123"}
        # 시작 직후 즉시 1회 하트비트
        assert len(transport.calls_to(SESSION_HEARTBEAT_PATH)) >= 1

    async def test_second_call_while_active_is_noop(self, manager, transport):
        assert await manager.init_session() is True
        assert await manager.init_session() is True

        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 1
        assert len(heartbeat_loops()) == 1

    async def test_concurrent_calls_are_deduplicated(self, manager, transport):
        transport.delays[SESSION_INITIATE_PATH] = 0.05

        results = await asyncio.gather(manager.init_session(), manager.init_session())

        assert results == [True, False]
        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 1
        assert len(heartbeat_loops()) == 1

    @pytest.mark.parametrize("failure", [
        TransportError("connection refused"),
        ParseError("invalid json"),
        {"success": False, "error": {"code": "SERVER_BUSY", "message": "later"}},
        {"success": False}
    ])
    async def test_retries_at_fixed_interval(self, manager, transport, failure):
        recorder = EventRecorder(manager)
        transport.script(SESSION_INITIATE_PATH, failure, failure, {"success": True})

        assert await manager.init_session() is True

        calls = transport.calls_to(SESSION_INITIATE_PATH)
        assert len(calls) == 3
        for previous, current in zip(calls, calls[1:]):
            assert current.at - previous.at >= manager.init_retry_delay * 0.9
        assert recorder.error_contexts().count("init_session") == 2
        assert recorder.states == [True]

    async def test_server_rejection_reported_as_api_error(self, manager, transport):
        recorder = EventRecorder(manager)
        transport.script(SESSION_INITIATE_PATH, {"success": False, "error": {"code": "BANNED", "message": "x"}})

        await manager.init_session()

        context, error = recorder.errors[0]
        assert context == "init_session"
        assert isinstance(error, ServerRejection)
        assert error.code == "BANNED"

    async def test_reinitiates_when_invalidated_during_grace(self, manager, transport):
        """첫 하트비트가 세션을 무효화하면 즉시 다시 시작"""
        transport.script(SESSION_HEARTBEAT_PATH, NO_ACTIVE_SESSION_RESPONSE)

        assert await manager.init_session() is True

        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 2
        await asyncio.sleep(manager.reinit_delay * 3)
        # 예약된 재시작은 이미 유효한 세션을 보고 네트워크 호출 없이 끝남
        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 2
        assert manager.is_valid

    async def test_close_interrupts_retry_wait(self, transport):
        manager = SessionManager(transport, init_retry_delay=10.0, validity_grace=0.01)
        manager.set_auth_token("tok")
        transport.set_default(SESSION_INITIATE_PATH, TransportError("down"))

        task = asyncio.create_task(manager.init_session())
        assert await wait_until(lambda: len(transport.calls_to(SESSION_INITIATE_PATH)) == 1)
        await manager.close()

        assert await asyncio.wait_for(task, timeout=1.0) is False
        assert not manager.is_initializing

    async def test_close_cancels_initiate_in_flight(self, manager, transport):
        transport.delays[SESSION_INITIATE_PATH] = 0.1

        task = asyncio.create_task(manager.init_session())
        assert await wait_until(lambda: len(transport.calls_to(SESSION_INITIATE_PATH)) == 1)
        await manager.close()

        assert await asyncio.wait_for(task, timeout=1.0) is False
        await asyncio.sleep(0.15)
        assert not manager.is_valid
        assert not manager.heartbeat_running
        assert transport.calls_to(SESSION_HEARTBEAT_PATH) == []

    async def test_end_request_stops_retries(self, manager, transport):
        transport.set_default(SESSION_INITIATE_PATH, TransportError("down"))

        task = asyncio.create_task(manager.init_session())
        assert await wait_until(lambda: len(transport.calls_to(SESSION_INITIATE_PATH)) == 1)
        assert await manager.end_session() is True

        assert await asyncio.wait_for(task, timeout=1.0) is False
        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 1
        assert not manager.is_valid

    async def test_init_after_close_returns_false(self, manager, transport):
        await manager.close()
        assert await manager.init_session() is False
        assert transport.calls == []


@pytest.mark.asyncio
class TestAuthToken:
    """토큰 교체 테스트"""

    async def test_token_swap_invalidates_once(self, manager, transport):
        recorder = EventRecorder(manager)
        await manager.init_session()

        manager.set_auth_token("second-token")
        manager.set_auth_token("third-token")

        assert recorder.states == [True, False]
        assert not manager.is_valid
        assert not manager.heartbeat_running
        # 서버에 종료 요청은 보내지 않음
        assert transport.calls_to(SESSION_END_PATH) == []

    async def test_each_transition_fires_once(self, manager):
        recorder = EventRecorder(manager)

        for token in ("a", "b", "c"):
            manager.set_auth_token(token)
            assert await manager.init_session() is True
        manager.set_auth_token("d")

        assert recorder.states == [True, False, True, False, True, False]

    async def test_new_token_used_for_next_session(self, manager, transport):
        manager.set_auth_token("fresh")
        await manager.init_session()
        assert transport.calls_to(SESSION_INITIATE_PATH)[-1].body == {"auth_token": "fresh"}


@pytest.mark.asyncio
class TestHeartbeat:
    """하트비트 루프 테스트"""

    async def test_sends_at_interval(self, manager, transport):
        await manager.init_session()
        await asyncio.sleep(manager.heartbeat_interval * 3.5)

        calls = transport.calls_to(SESSION_HEARTBEAT_PATH)
        assert len(calls) >= 3
        assert all(call.body == {"auth_token": "test-token-123"} for call in calls)
        assert len(heartbeat_loops()) == 1

    async def test_no_active_session_schedules_single_reinit(self, manager, transport):
        recorder = EventRecorder(manager)
        transport.script(SESSION_HEARTBEAT_PATH, {"success": True}, NO_ACTIVE_SESSION_RESPONSE)

        await manager.init_session()
        assert await wait_until(lambda: len(transport.calls_to(SESSION_INITIATE_PATH)) == 2)
        assert await wait_until(lambda: manager.is_valid)

        failed_heartbeat = transport.calls_to(SESSION_HEARTBEAT_PATH)[1]
        reinit_call = transport.calls_to(SESSION_INITIATE_PATH)[1]
        assert reinit_call.at - failed_heartbeat.at >= manager.reinit_delay * 0.9

        await asyncio.sleep(manager.heartbeat_interval * 3)
        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 2
        assert recorder.states == [True, False, True]
        assert "heartbeat" in recorder.error_contexts()

    @pytest.mark.parametrize("failure", [
        TransportError("timeout"),
        {"success": False, "error": {"code": "INTERNAL", "message": "boom"}},
        RuntimeError("driver crashed")
    ])
    async def test_other_failure_invalidates_without_recovery(self, manager, transport, failure):
        recorder = EventRecorder(manager)
        transport.script(SESSION_HEARTBEAT_PATH, {"success": True}, failure)

        await manager.init_session()
        assert await wait_until(lambda: not manager.is_valid)
        await asyncio.sleep(manager.heartbeat_interval * 3)

        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 1
        assert len(transport.calls_to(SESSION_HEARTBEAT_PATH)) == 2
        assert not manager.heartbeat_running
        assert recorder.states == [True, False]
        assert manager.get_status()["reinit_pending"] is False


@pytest.mark.asyncio
class TestEndSession:
    """세션 종료 테스트"""

    async def test_end_without_session_is_noop(self, manager, transport):
        assert await manager.end_session() is True
        assert transport.calls == []

    async def test_end_stops_heartbeat_before_end_call(self, manager, transport):
        recorder = EventRecorder(manager)
        transport.delays[SESSION_HEARTBEAT_PATH] = 0.03
        await manager.init_session()
        await asyncio.sleep(manager.heartbeat_interval * 2)

        assert await manager.end_session() is True

        end_call = transport.calls_to(SESSION_END_PATH)[0]
        assert end_call.body == {"auth_token": "test-token-123"}
        assert all(call.at <= end_call.at for call in transport.calls_to(SESSION_HEARTBEAT_PATH))

        heartbeat_count = len(transport.calls_to(SESSION_HEARTBEAT_PATH))
        await asyncio.sleep(manager.heartbeat_interval * 3)
        assert len(transport.calls_to(SESSION_HEARTBEAT_PATH)) == heartbeat_count
        assert not manager.is_valid
        assert heartbeat_loops() == []
        assert recorder.states == [True, False]

    async def test_no_active_session_counts_as_ended(self, manager, transport):
        transport.script(SESSION_END_PATH, NO_ACTIVE_SESSION_RESPONSE)
        await manager.init_session()

        assert await manager.end_session() is True
        assert not manager.is_valid

    @pytest.mark.parametrize("failure", [
        TransportError("down"),
        {"success": False, "error": {"code": "INTERNAL", "message": "boom"}},
        RuntimeError("driver crashed")
    ])
    async def test_failure_returns_false_without_retry(self, manager, transport, failure):
        recorder = EventRecorder(manager)
        transport.script(SESSION_END_PATH, failure)
        await manager.init_session()

        assert await manager.end_session() is False

        assert len(transport.calls_to(SESSION_END_PATH)) == 1
        assert manager.is_valid
        assert manager.heartbeat_running
        assert not manager.is_ending
        assert "end_session" in recorder.error_contexts()

    async def test_failed_end_resumes_heartbeat(self, manager, transport):
        transport.script(SESSION_END_PATH, TransportError("down"))
        await manager.init_session()

        assert await manager.end_session() is False
        heartbeat_count = len(transport.calls_to(SESSION_HEARTBEAT_PATH))
        assert manager.heartbeat_running
        assert await wait_until(lambda: len(transport.calls_to(SESSION_HEARTBEAT_PATH)) > heartbeat_count)

        # 다시 종료하면 실제 종료 요청이 나감
        assert await manager.end_session() is True
        assert len(transport.calls_to(SESSION_END_PATH)) == 2
        assert not manager.heartbeat_running

    async def test_end_cancels_pending_reinit(self, manager, transport):
        recorder = EventRecorder(manager)
        manager.reinit_delay = 0.2
        transport.script(SESSION_HEARTBEAT_PATH, {"success": True}, NO_ACTIVE_SESSION_RESPONSE)

        await manager.init_session()
        assert await wait_until(lambda: not manager.is_valid)
        assert manager.get_status()["reinit_pending"] is True

        assert await manager.end_session() is True
        await asyncio.sleep(manager.reinit_delay * 2)

        assert not manager.is_valid
        assert manager.get_status()["reinit_pending"] is False
        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 1
        assert transport.calls_to(SESSION_END_PATH) == []
        assert recorder.states == [True, False]

    async def test_end_waits_for_initiate_in_flight(self, manager, transport):
        transport.delays[SESSION_INITIATE_PATH] = 0.05

        init_task = asyncio.create_task(manager.init_session())
        assert await wait_until(lambda: len(transport.calls_to(SESSION_INITIATE_PATH)) == 1)

        assert await manager.end_session() is True
        assert await asyncio.wait_for(init_task, timeout=1.0) is False
        assert len(transport.calls_to(SESSION_END_PATH)) == 1
        assert not manager.is_valid
        assert not manager.heartbeat_running

    async def test_concurrent_end_is_deduplicated(self, manager, transport):
        transport.delays[SESSION_END_PATH] = 0.05
        await manager.init_session()

        await asyncio.gather(manager.end_session(), manager.end_session())

        assert len(transport.calls_to(SESSION_END_PATH)) == 1
        assert not manager.is_valid

    async def test_session_can_restart_after_end(self, manager, transport):
        await manager.init_session()
        await manager.end_session()

        assert await manager.init_session() is True
        assert len(transport.calls_to(SESSION_INITIATE_PATH)) == 2


@pytest.mark.asyncio
class TestAdvertisement:
    """광고 조회 테스트"""

    AD_PAYLOAD = {
        "ad": {
            "id": 5, "title": "Ad", "description": "", "type": "image",
            "campaign": 9, "url": "https://example.com", "media": "https://example.com/a.png", "isActive": True
        }
    }

    async def test_no_request_without_session(self, manager, transport):
        assert await manager.get_advertisement() is None
        assert transport.calls == []

    async def test_returns_advertisement(self, manager, transport):
        transport.script(ADVERTISEMENTS_PATH, self.AD_PAYLOAD)
        await manager.init_session()

        ad = await manager.get_advertisement()

        assert ad.id == 5
        assert ad.campaign_id == 9
        assert transport.calls_to(ADVERTISEMENTS_PATH)[0].body == {
            "game_uuid": "game-uuid-1",
            "auth_token": "test-token-123"
        }

    @pytest.mark.parametrize("failure", [
        TransportError("down"),
        {"error": {"code": "NO_ADS", "message": "none"}},
        {"success": True},
        {"ad": {"id": "x"}},
        {"ad": {"id": float("inf")}},
        RuntimeError("driver crashed")
    ])
    async def test_failures_return_none(self, manager, transport, failure):
        recorder = EventRecorder(manager)
        transport.script(ADVERTISEMENTS_PATH, failure)
        await manager.init_session()

        assert await manager.get_advertisement() is None
        assert "get_advertisement" in recorder.error_contexts()


@pytest.mark.asyncio
class TestLifecycle:
    """상태 조회와 전역 관리자 함수 테스트"""

    async def test_status(self, manager):
        assert manager.get_status() == {
            "state": "idle",
            "is_valid": False,
            "has_token": True,
            "heartbeat_running": False,
            "reinit_pending": False,
            "closed": False
        }
        await manager.init_session()
        assert manager.get_status()["state"] == "active"
        assert manager.get_status()["heartbeat_running"] is True

    async def test_close_closes_owned_transport(self, fast_timings):
        transport = ScriptedTransport()
        manager = SessionManager(transport, owns_transport=True, **fast_timings)
        await manager.close()
        assert transport.closed

    async def test_close_keeps_injected_transport(self, manager, transport):
        await manager.close()
        assert not transport.closed

    async def test_stream_ends_on_close(self, manager):
        received = []

        async def consume():
            async for event in manager.events.stream():
                received.append(event.to_dict())

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        await manager.init_session()
        await manager.close()
        await asyncio.wait_for(consumer, timeout=1.0)

        assert received[0]["type"] == "session_state_changed"
        assert received[0]["is_valid"] is True

    async def test_initialize_and_shutdown(self, settings, transport):
        settings = settings.copy(update={"auth_token": "global-token"})
        manager = await initialize_session_manager(settings, transport=transport)

        assert get_session_manager() is manager
        assert await initialize_session_manager(settings, transport=transport) is manager
        assert await manager.init_session() is True

        assert await shutdown_session_manager() is True
        assert transport.paths()[-1] == SESSION_END_PATH
        assert not manager.heartbeat_running

    async def test_shutdown_while_initiate_in_flight(self, settings, transport):
        transport.delays[SESSION_INITIATE_PATH] = 0.1
        settings = settings.copy(update={"auth_token": "global-token"})
        manager = await initialize_session_manager(settings, transport=transport)

        init_task = asyncio.create_task(manager.init_session())
        assert await wait_until(lambda: len(transport.calls_to(SESSION_INITIATE_PATH)) == 1)

        assert await shutdown_session_manager() is True
        assert await asyncio.wait_for(init_task, timeout=1.0) is False
        assert transport.paths()[-1] == SESSION_END_PATH
        assert not manager.is_valid
        assert not manager.heartbeat_running

        call_count = len(transport.calls)
        await asyncio.sleep(settings.heartbeat_interval * 3)
        assert len(transport.calls) == call_count

    async def test_shutdown_without_manager(self):
        assert await shutdown_session_manager() is True
