"""백엔드 게임 세션 생명주기 관리

프로세스당 하나의 백엔드 세션을 소유하며 시작 → 하트비트 → 종료 흐름과
재시도, 세션 만료 시 재시작을 담당합니다.

SOLID 원칙:
- 단일 책임: 세션 상태와 하트비트 태스크 관리만 담당
- 의존성 역전: 추상 ApiTransport에 의존 (httpx 구현은 어댑터가 담당)

동시성 모델:
- asyncio 협력적 태스크 (init_session, 하트비트 루프, end_session)
- 가드 플래그(_is_initializing, _is_ending, _is_valid) 전환은 하나의 asyncio.Lock 안에서 수행
- 하트비트 취소는 Task.cancel()로 대기 중인 sleep과 진행 중인 요청을 모두 중단
"""

import asyncio
import logging
from typing import Dict, Any, Optional

from ..adapters import ApiTransport, create_transport
from ..errors import ConfigurationError, ParseError, ServerRejection, TransportError
from ..events import EventBus
from ..models import Advertisement, ApiResponse, SessionState

logger = logging.getLogger(__name__)

SESSION_INITIATE_PATH = "/games/sessions/initiate"
SESSION_HEARTBEAT_PATH = "/games/sessions/heartbeat"
SESSION_END_PATH = "/games/sessions/end"
ADVERTISEMENTS_PATH = "/advertisements"


class SessionManager:
    """백엔드 세션 관리자

    상태 전이: IDLE → INITIALIZING → ACTIVE → ENDING → IDLE
    하트비트 실패 시 ACTIVE에서 무효 상태로 떨어집니다.
    """

    def __init__(
        self,
        transport: ApiTransport,
        game_uuid: str = "",
        *,
        heartbeat_interval: float = 9.0,
        init_retry_delay: float = 10.0,
        reinit_delay: float = 1.0,
        validity_grace: float = 1.0,
        event_bus: Optional[EventBus] = None,
        owns_transport: bool = False
    ):
        """
        Args:
            transport: API 전송 계층
            game_uuid: 광고 요청에 사용할 게임 UUID
            heartbeat_interval: 하트비트 주기 (초)
            init_retry_delay: 세션 시작 실패 시 고정 재시도 간격 (초)
            reinit_delay: NO_ACTIVE_SESSION 수신 후 재시작까지 지연 (초)
            validity_grace: 세션 시작 후 유효성 재확인까지 대기 (초)
            event_bus: 이벤트 버스 (없으면 새로 생성)
            owns_transport: close() 시 전송 계층도 닫을지 여부
        """
        self._transport = transport
        self.game_uuid = game_uuid
        self.heartbeat_interval = heartbeat_interval
        self.init_retry_delay = init_retry_delay
        self.reinit_delay = reinit_delay
        self.validity_grace = validity_grace
        self.events = event_bus or EventBus()
        self._owns_transport = owns_transport

        self._auth_token = ""
        self._is_valid = False
        self._is_initializing = False
        self._is_ending = False
        self._closed = False
        self._end_count = 0

        self._lock = asyncio.Lock()
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reinit_task: Optional[asyncio.Task] = None
        self._init_attempt: Optional[asyncio.Task] = None
        self._close_event: Optional[asyncio.Event] = None
        self._logger = logging.getLogger(f"{__name__}.SessionManager")

    @classmethod
    def from_settings(cls, settings, transport: Optional[ApiTransport] = None,
                      event_bus: Optional[EventBus] = None) -> "SessionManager":
        """PlaymanitySettings로부터 세션 관리자를 생성합니다

        transport가 없으면 httpx 전송 계층을 만들고 소유권을 가집니다.
        """
        owns_transport = transport is None
        manager = cls(
            transport or create_transport(settings),
            settings.game_uuid,
            event_bus=event_bus,
            owns_transport=owns_transport,
            **settings.get_session_timings()
        )
        if settings.auth_token:
            manager.set_auth_token(settings.auth_token)
        return manager

    # -- 상태 조회 ------------------------------------------------------------

    @property
    def auth_token(self) -> str:
        return self._auth_token

    @property
    def is_valid(self) -> bool:
        return self._is_valid

    @property
    def is_initializing(self) -> bool:
        return self._is_initializing

    @property
    def is_ending(self) -> bool:
        return self._is_ending

    @property
    def state(self) -> SessionState:
        if self._is_ending:
            return SessionState.ENDING
        if self._is_initializing:
            return SessionState.INITIALIZING
        if self._is_valid:
            return SessionState.ACTIVE
        return SessionState.IDLE

    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    def get_status(self) -> Dict[str, Any]:
        """세션 상태 요약 반환"""
        return {
            "state": self.state.value,
            "is_valid": self._is_valid,
            "has_token": bool(self._auth_token),
            "heartbeat_running": self.heartbeat_running,
            "reinit_pending": self._reinit_task is not None and not self._reinit_task.done(),
            "closed": self._closed
        }

    # -- 토큰 -----------------------------------------------------------------

    def set_auth_token(self, token: str) -> None:
        """인증 토큰 교체

        유효한 세션이 있었다면 무효화하고 하트비트를 중지합니다.
        서버에는 종료 요청을 보내지 않습니다.
        """
        self._auth_token = token or ""
        if self._is_valid:
            self._logger.info("인증 토큰이 교체되어 현재 세션을 무효화합니다")
            self._stop_heartbeat()
            self._set_valid(False)

    # -- 세션 시작 --------------------------------------------------------------

    async def init_session(self) -> bool:
        """세션 시작 (성공할 때까지 고정 간격으로 재시도)

        Returns:
            세션이 확인되면 True. 이미 시작 중이면 현재 유효성을 즉시 반환하고,
            관리자가 닫히면 False를 반환합니다.

        Raises:
            ConfigurationError: 인증 토큰이 없는 경우
        """
        if not self._auth_token:
            raise ConfigurationError("세션 시작에는 인증 토큰이 필요합니다")

        async with self._lock:
            if self._is_initializing or self._is_valid:
                self._logger.debug("세션이 이미 시작 중이거나 유효하여 시작 요청을 건너뜁니다")
                return self._is_valid
            if self._closed:
                return False
            self._is_initializing = True
            end_count = self._end_count

        try:
            while not self._closed:
                if self._end_count != end_count:
                    self._logger.info("세션 종료가 요청되어 시작을 중단합니다")
                    return False

                if await self._run_init_attempt():
                    # 첫 하트비트가 세션을 무효화했을 수 있으므로 재확인
                    if await self._wait_or_closed(self.validity_grace):
                        return False
                    if self._is_valid:
                        return True
                    if self._end_count != end_count:
                        self._logger.info("확인 대기 중 세션이 종료되어 재시작하지 않습니다")
                        return False
                    self._logger.warning("세션 시작 직후 무효화되어 다시 시작합니다")
                    continue

                self._logger.info(f"{self.init_retry_delay}초 후 세션 시작을 재시도합니다")
                if await self._wait_or_closed(self.init_retry_delay):
                    return False
            return False
        finally:
            self._is_initializing = False

    async def _run_init_attempt(self) -> bool:
        """시작 요청 1회를 별도 태스크로 실행

        end_session()은 이 태스크가 끝날 때까지 기다리고, close()는 취소합니다.
        """
        attempt = asyncio.create_task(self._initiate_once())
        self._init_attempt = attempt
        try:
            return await attempt
        except asyncio.CancelledError:
            if self._closed:
                return False
            raise
        finally:
            if self._init_attempt is attempt:
                self._init_attempt = None

    async def _initiate_once(self) -> bool:
        response = await self._post_session(SESSION_INITIATE_PATH, "init_session")
        if response is None or not response.is_success():
            return False

        async with self._lock:
            if self._closed:
                self._logger.warning("관리자가 닫힌 뒤 도착한 세션 시작 응답을 무시합니다")
                return False
            self._set_valid(True)
            self._start_heartbeat()
        self._logger.info("게임 세션 시작 성공")
        return True

    # -- 하트비트 ---------------------------------------------------------------

    def _start_heartbeat(self) -> None:
        """하트비트 루프 시작 (기존 루프는 취소)"""
        if self.heartbeat_running:
            self._heartbeat_task.cancel()
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    def _stop_heartbeat(self) -> Optional[asyncio.Task]:
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is not None and not task.done():
            task.cancel()
        return task

    async def _cancel_heartbeat(self) -> None:
        """하트비트를 취소하고 완전히 멈출 때까지 대기"""
        task = self._stop_heartbeat()
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _heartbeat_loop(self) -> None:
        """즉시 1회 확인 후 고정 주기로 하트비트 전송"""
        try:
            if not await self._send_heartbeat():
                return
            while self._is_valid:
                await asyncio.sleep(self.heartbeat_interval)
                if not await self._send_heartbeat():
                    return
        except asyncio.CancelledError:
            self._logger.debug("하트비트 루프 취소됨")
            raise

    async def _send_heartbeat(self) -> bool:
        """하트비트 1회 전송

        Returns:
            루프를 계속해야 하면 True
        """
        response = await self._post_session(SESSION_HEARTBEAT_PATH, "heartbeat")

        if response is not None and response.is_success():
            return True

        if response is not None and response.is_no_active_session():
            self._logger.warning("서버에 활성 세션이 없어 세션을 다시 시작합니다")
            self._set_valid(False)
            self._schedule_reinit()
            return False

        self._logger.error("하트비트 실패로 세션이 무효화되었습니다")
        self._set_valid(False)
        return False

    def _schedule_reinit(self) -> None:
        """지연 후 1회 세션 재시작 예약"""
        if self._closed:
            return
        if self._reinit_task is not None and not self._reinit_task.done():
            return
        self._reinit_task = asyncio.create_task(self._delayed_reinit())

    async def _delayed_reinit(self) -> None:
        end_count = self._end_count
        if await self._wait_or_closed(self.reinit_delay):
            return
        if self._end_count != end_count:
            self._logger.info("재시작 대기 중 세션 종료가 요청되어 재시작하지 않습니다")
            return
        try:
            await self.init_session()
        except ConfigurationError as e:
            self._logger.error(f"세션 재시작 불가: {e}")

    # -- 세션 종료 --------------------------------------------------------------

    async def end_session(self) -> bool:
        """세션 종료 (최선 노력, 재시도 없음)

        진행 중인 시작 요청은 결과가 반영될 때까지 기다리고, 예약된 재시작과
        아직 요청을 보내지 않은 시작 재시도는 중단시킵니다. 종료 요청이 실패하면
        세션은 유효한 상태로 남고 하트비트가 다시 시작됩니다.

        Returns:
            종료 후 세션이 무효이면 True. 예외를 던지지 않습니다.
        """
        async with self._lock:
            if self._is_ending:
                self._logger.debug("세션이 이미 종료 중이어서 종료 요청을 건너뜁니다")
                return not self._is_valid
            self._is_ending = True
            self._end_count += 1

        try:
            await self._wait_init_attempt()
            # 종료 요청 이후 하트비트나 예약된 재시작이 세션을 되살리지 않도록 먼저 중지
            await self._cancel_heartbeat()
            await self._cancel_reinit()

            if not self._is_valid:
                self._logger.debug("유효한 세션이 없어 종료 요청을 건너뜁니다")
                return True

            response = await self._post_session(SESSION_END_PATH, "end_session")
            if response is not None and (response.is_success() or response.is_no_active_session()):
                self._set_valid(False)
                self._logger.info("세션 종료 성공")
                return True

            self._logger.error("세션 종료 실패, 하트비트를 다시 시작합니다")
            async with self._lock:
                if self._is_valid and not self._closed:
                    self._start_heartbeat()
            return False
        finally:
            self._is_ending = False

    # -- 광고 -----------------------------------------------------------------

    async def get_advertisement(self) -> Optional[Advertisement]:
        """광고 조회

        Returns:
            광고 데이터. 세션이 없거나 어떤 실패든 None (예외를 던지지 않음)
        """
        if not self._is_valid:
            self._logger.info("세션이 유효하지 않아 광고를 조회하지 않습니다")
            return None

        body = {"game_uuid": self.game_uuid, "auth_token": self._auth_token}
        try:
            payload = await self._transport.post_json(ADVERTISEMENTS_PATH, body)
            if payload.get("error") is not None:
                raise ApiResponse.from_payload(payload).error.to_exception()
            if not payload.get("ad"):
                raise ParseError("응답에 광고 데이터가 없습니다")
            return Advertisement.from_payload(payload["ad"])
        except (TransportError, ServerRejection) as e:
            self._logger.error(f"광고 조회 실패: {e}")
            self.events.emit_api_error("get_advertisement", e)
            return None
        except Exception as e:
            self._logger.exception(f"광고 조회 중 예기치 않은 오류: {e}")
            self.events.emit_api_error("get_advertisement", e)
            return None

    # -- 종료 처리 --------------------------------------------------------------

    async def close(self) -> None:
        """관리자 종료: 진행 중인 시작 요청과 하트비트/재시작 태스크 취소, 재시도 대기 해제, 전송 계층 정리"""
        self._closed = True
        if self._close_event is not None:
            self._close_event.set()

        attempt = self._init_attempt
        if attempt is not None and not attempt.done():
            attempt.cancel()
            await asyncio.wait({attempt})

        await self._cancel_heartbeat()
        await self._cancel_reinit()

        await self.events.drain()
        self.events.close_streams()

        if self._owns_transport:
            await self._transport.close()
        self._logger.info("세션 관리자 종료")

    # -- 내부 도우미 --------------------------------------------------------------

    def _set_valid(self, value: bool) -> None:
        """유효성 변경 (실제로 바뀐 경우에만 이벤트 발생)"""
        if self._is_valid == value:
            return
        self._is_valid = value
        self.events.emit_state_changed(value)

    async def _wait_init_attempt(self) -> None:
        """진행 중인 시작 요청이 끝날 때까지 대기 (취소를 전파하지 않음)"""
        attempt = self._init_attempt
        if attempt is not None and not attempt.done():
            await asyncio.wait({attempt})

    async def _cancel_reinit(self) -> None:
        task = self._reinit_task
        self._reinit_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _wait_or_closed(self, delay: float) -> bool:
        """지연 대기. 대기 중 관리자가 닫히면 True"""
        if self._closed:
            return True
        if self._close_event is None:
            self._close_event = asyncio.Event()
        try:
            await asyncio.wait_for(self._close_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        return self._closed

    async def _post_session(self, path: str, context: str) -> Optional[ApiResponse]:
        """세션 API 호출

        전송/파싱 실패는 None으로, 서버 오류 응답은 ApiResponse로 반환하며
        두 경우 모두 api_error 이벤트를 발생시킵니다.
        """
        try:
            payload = await self._transport.post_json(path, {"auth_token": self._auth_token})
            response = ApiResponse.from_payload(payload)
        except TransportError as e:
            self._logger.warning(f"{context} 요청 실패: {e}")
            self.events.emit_api_error(context, e)
            return None
        except Exception as e:
            self._logger.exception(f"{context} 요청 중 예기치 않은 오류: {e}")
            self.events.emit_api_error(context, e)
            return None

        if not response.is_success():
            self._logger.warning(f"{context} 오류 응답: {response.describe()}")
            error = response.error.to_exception() if response.error else ServerRejection("UNSUCCESSFUL", response.describe())
            self.events.emit_api_error(context, error)
        return response


# 전역 세션 관리자 인스턴스 (싱글톤 패턴)
_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """세션 관리자 싱글톤 인스턴스 반환

    initialize_session_manager()가 먼저 호출되지 않았으면 환경변수 설정으로 생성합니다.
    """
    global _session_manager
    if _session_manager is None:
        from ..config import get_settings
        _session_manager = SessionManager.from_settings(get_settings())
    return _session_manager


def set_session_manager(manager: Optional[SessionManager]) -> None:
    """외부에서 만든 관리자를 전역 인스턴스로 등록 (테스트/호스트용)"""
    global _session_manager
    _session_manager = manager


async def initialize_session_manager(settings=None, transport: Optional[ApiTransport] = None) -> SessionManager:
    """프로세스 시작 시 1회 호출: 세션 관리자 생성 및 등록"""
    global _session_manager
    if _session_manager is not None:
        return _session_manager
    if settings is None:
        from ..config import get_settings
        settings = get_settings()
    _session_manager = SessionManager.from_settings(settings, transport=transport)
    logger.info(f"세션 관리자 초기화 - 서버: {settings.server_url}")
    return _session_manager


async def shutdown_session_manager() -> bool:
    """프로세스 종료 전 1회 await: 세션 종료 요청 후 관리자 정리

    Returns:
        end_session() 결과 (관리자가 없으면 True)
    """
    global _session_manager
    manager = _session_manager
    if manager is None:
        return True
    _session_manager = None
    try:
        ended = await manager.end_session()
    finally:
        await manager.close()
    return ended
