"""Playmanity 호스트 생명주기

게임(호스트 애플리케이션)이 프로세스 시작 시 startup()을 1회 호출하고,
종료 전에 shutdown()을 1회 await하도록 하는 시작/종료 계약을 구현합니다.
단일 책임 원칙에 따라 세션 관리자 생성/정리와 인증 흐름 연결만 담당합니다.
"""

import asyncio
import logging
import signal
from typing import Optional

from ..adapters import ApiTransport, create_transport
from ..auth import DeviceAuthenticator, authenticate_and_start_session
from ..config import PlaymanitySettings, get_settings
from ..errors import AuthenticationDenied, ConfigurationError
from ..sessions import SessionManager, set_session_manager, shutdown_session_manager


logger = logging.getLogger(__name__)


class PlaymanityHost:
    """Playmanity 호스트 애플리케이션 클래스

    단일 책임 원칙: SDK 라이프사이클 관리만 담당
    의존성 역전 원칙: 전송 계층을 주입받아 테스트 가능한 구조
    """

    def __init__(self, settings: Optional[PlaymanitySettings] = None, transport: Optional[ApiTransport] = None):
        """
        Args:
            settings: SDK 설정 (없으면 환경변수에서 로드)
            transport: API 전송 계층 (없으면 httpx 전송 계층 생성)
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self.session_manager: Optional[SessionManager] = None
        self._stop_event = asyncio.Event()
        self._signals: list = []
        self._logger = logging.getLogger(__name__)

    async def startup(self) -> SessionManager:
        """애플리케이션 시작 시 초기화 작업"""
        try:
            self._logger.info(f"Playmanity 호스트 시작 - 서버: {self.settings.server_url}")

            owns_transport = self._transport is None
            if owns_transport:
                self._transport = create_transport(self.settings)

            self.session_manager = SessionManager(
                self._transport,
                self.settings.game_uuid,
                owns_transport=owns_transport,
                **self.settings.get_session_timings()
            )
            if self.settings.auth_token:
                self.session_manager.set_auth_token(self.settings.auth_token)
            set_session_manager(self.session_manager)

            self.session_manager.events.on_session_state_changed(
                lambda valid: self._logger.info(f"세션 상태 변경: {'유효' if valid else '무효'}")
            )
            self._logger.info("Playmanity 호스트 시작 완료")
            return self.session_manager

        except Exception as e:
            self._logger.error(f"호스트 시작 오류: {e}")
            raise

    async def run_session(self, token: Optional[str] = None, open_url=None) -> bool:
        """세션 시작

        토큰이 주어지거나 설정에 있으면 바로 세션을 시작하고,
        없으면 디바이스 인증을 거쳐 토큰을 얻습니다.
        """
        if self.session_manager is None:
            raise RuntimeError("startup()이 먼저 호출되어야 합니다")

        token = token or self.session_manager.auth_token
        if token:
            self.session_manager.set_auth_token(token)
            return await self.session_manager.init_session()

        if not self.settings.device_id:
            raise ConfigurationError("인증 토큰 또는 device_id가 필요합니다")

        authenticator = DeviceAuthenticator.from_settings(self.settings, self._transport)
        return await authenticate_and_start_session(authenticator, self.session_manager, open_url=open_url)

    def request_stop(self) -> None:
        """종료 요청 (시그널 핸들러에서 호출)"""
        self._stop_event.set()

    def install_signal_handlers(self) -> None:
        """SIGINT/SIGTERM 수신 시 종료 요청"""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                self._signals.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows 등 시그널 핸들러를 지원하지 않는 환경
                pass

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        while self._signals:
            loop.remove_signal_handler(self._signals.pop())

    async def wait_until_stopped(self) -> None:
        await self._stop_event.wait()

    async def shutdown(self) -> bool:
        """애플리케이션 종료 시 정리 작업

        Returns:
            세션 종료 성공 여부
        """
        try:
            self._logger.info("Playmanity 호스트 종료")
            ended = await shutdown_session_manager()
            self.session_manager = None
            self._logger.info("세션 관리자 종료 완료")
            return ended
        except Exception as e:
            self._logger.error(f"호스트 종료 오류: {e}")
            return False


def create_host(settings: Optional[PlaymanitySettings] = None, transport: Optional[ApiTransport] = None) -> PlaymanityHost:
    """호스트 팩토리 함수"""
    return PlaymanityHost(settings=settings, transport=transport)


async def run_host(
    settings: Optional[PlaymanitySettings] = None,
    token: Optional[str] = None,
    transport: Optional[ApiTransport] = None
) -> int:
    """호스트 실행: 시작 → 세션 유지 → 종료 신호 대기 → 종료

    Returns:
        프로세스 종료 코드
    """
    host = create_host(settings, transport)
    await host.startup()
    host.install_signal_handlers()

    session_task = asyncio.create_task(host.run_session(token=token))
    stop_task = asyncio.create_task(host.wait_until_stopped())
    exit_code = 0
    try:
        done, _ = await asyncio.wait({session_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if session_task in done:
            if session_task.result():
                logger.info("세션 유지 중 - Ctrl+C로 종료")
                await stop_task
            else:
                exit_code = 1
    except (ConfigurationError, AuthenticationDenied) as e:
        logger.error(f"세션을 시작할 수 없습니다: {e}")
        exit_code = 1
    finally:
        for task in (session_task, stop_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(session_task, stop_task, return_exceptions=True)
        host.remove_signal_handlers()
        await host.shutdown()
    return exit_code
