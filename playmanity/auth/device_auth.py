"""디바이스 인증 흐름

게임 UUID와 디바이스 ID로 인증을 시작하고, 사용자가 브라우저에서 승인할 때까지
상태를 폴링하여 인증 토큰을 얻습니다. 토큰을 얻으면 세션을 시작할 수 있습니다.
"""

import asyncio
import logging
import webbrowser
from typing import Any, Callable, Optional

from ..adapters import ApiTransport
from ..errors import AuthenticationDenied, ConfigurationError, TransportError
from ..models import AuthInitResponse, AuthStatus, AuthStatusResponse

logger = logging.getLogger(__name__)

AUTH_INITIATE_PATH = "/games/auth/initiate"
AUTH_STATUS_PATH = "/games/auth/status/{auth_id}"


class DeviceAuthenticator:
    """디바이스 인증 클라이언트

    단일 책임 원칙: 인증 시작과 상태 폴링만 담당 (디바이스 ID 생성은 호스트 몫)
    """

    def __init__(self, transport: ApiTransport, game_uuid: str, device_id: str, poll_interval: float = 1.0):
        """
        Args:
            transport: API 전송 계층
            game_uuid: 게임 UUID
            device_id: 호스트가 제공하는 디바이스 식별자
            poll_interval: 인증 상태 폴링 주기 (초)
        """
        self._transport = transport
        self.game_uuid = game_uuid
        self.device_id = device_id
        self.poll_interval = poll_interval
        self._logger = logging.getLogger(f"{__name__}.DeviceAuthenticator")

    @classmethod
    def from_settings(cls, settings, transport: ApiTransport) -> "DeviceAuthenticator":
        return cls(transport, settings.game_uuid, settings.device_id, settings.auth_poll_interval)

    async def initiate(self) -> AuthInitResponse:
        """인증 시작 요청

        Raises:
            ConfigurationError: game_uuid 또는 device_id가 없는 경우
            TransportError / ParseError / ServerRejection
        """
        if not self.game_uuid or not self.device_id:
            raise ConfigurationError("디바이스 인증에는 game_uuid와 device_id가 필요합니다")

        payload = await self._transport.post_json(
            AUTH_INITIATE_PATH,
            {"game_uuid": self.game_uuid, "device_id": self.device_id}
        )
        return AuthInitResponse.from_payload(payload)

    async def poll_status(self, auth_id: str) -> AuthStatusResponse:
        """인증 상태 1회 조회"""
        payload = await self._transport.get_json(AUTH_STATUS_PATH.format(auth_id=auth_id))
        return AuthStatusResponse.from_payload(payload)

    async def authenticate(
        self,
        open_url: Optional[Callable[[str], Any]] = None,
        on_status: Optional[Callable[[AuthStatus], Any]] = None,
        timeout: Optional[float] = None
    ) -> str:
        """인증 전체 흐름 실행

        Args:
            open_url: 인증 URL을 여는 함수 (기본값: webbrowser.open)
            on_status: 폴링할 때마다 호출되는 상태 콜백
            timeout: 전체 대기 제한 (초, None이면 무제한)

        Returns:
            인증 토큰

        Raises:
            AuthenticationDenied: 사용자가 인증을 거부한 경우
            asyncio.TimeoutError: timeout 초과
        """
        if timeout is None:
            return await self._authenticate(open_url, on_status)
        return await asyncio.wait_for(self._authenticate(open_url, on_status), timeout=timeout)

    async def _authenticate(self, open_url, on_status) -> str:
        init_response = await self.initiate()
        self._logger.info(f"인증 대기 중 (auth_id: {init_response.auth_id})")
        (open_url or webbrowser.open)(init_response.auth_url)

        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                status = await self.poll_status(init_response.auth_id)
            except TransportError as e:
                # 일시적인 오류는 다음 폴링에서 다시 시도
                self._logger.warning(f"인증 상태 조회 실패: {e}")
                continue

            if on_status is not None:
                on_status(status.status)

            if status.status is AuthStatus.VALID:
                if not status.token:
                    self._logger.warning("인증은 완료되었지만 토큰이 없습니다")
                    continue
                self._logger.info("디바이스 인증 완료")
                return status.token

            if status.status is AuthStatus.DENIED:
                reason = status.error.message if status.error else "사용자가 인증을 거부했습니다"
                raise AuthenticationDenied(reason)

            self._logger.debug(f"인증 상태: {status.status.value}")


async def authenticate_and_start_session(authenticator: DeviceAuthenticator, manager, **kwargs) -> bool:
    """디바이스 인증 후 토큰을 설정하고 세션을 시작합니다

    Args:
        authenticator: DeviceAuthenticator 인스턴스
        manager: SessionManager 인스턴스
        **kwargs: authenticate()에 전달할 인자

    Returns:
        init_session() 결과
    """
    token = await authenticator.authenticate(**kwargs)
    manager.set_auth_token(token)
    return await manager.init_session()
