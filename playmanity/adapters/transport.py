"""API 전송 계층

세션 관리자가 의존하는 추상 전송 인터페이스와 httpx 기반 구현체를 제공합니다.
모든 요청/응답은 api_traffic 로거에 기록됩니다 (인증 토큰은 마스킹).
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

import httpx

from ..errors import ConfigurationError, ParseError, TransportError

# config.logging_config에서 파일 핸들러를 붙이는 API 트래픽 로거
api_traffic_logger = logging.getLogger('api_traffic')

SECRET_FIELDS = ("auth_token", "token")


def mask_secrets(data: Any) -> Any:
    """로그 기록용으로 토큰 값을 가립니다"""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key in SECRET_FIELDS and isinstance(value, str) and value:
                masked[key] = value[:3] + "***" if len(value) > 6 else "***"
            else:
                masked[key] = mask_secrets(value)
        return masked
    return data


class ApiTransport(ABC):
    """API 전송 인터페이스

    의존성 역전 원칙: 세션 관리자는 이 추상화에만 의존하며,
    테스트에서는 스크립트화된 가짜 구현체를 주입할 수 있습니다.
    """

    @abstractmethod
    async def post_json(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """JSON 본문으로 POST 요청을 보내고 JSON 객체 응답을 반환합니다

        Raises:
            TransportError: 네트워크/타임아웃/HTTP 실패
            ParseError: 응답이 JSON 객체가 아닌 경우
        """
        pass

    @abstractmethod
    async def get_json(self, path: str) -> Dict[str, Any]:
        """GET 요청을 보내고 JSON 객체 응답을 반환합니다"""
        pass

    async def close(self) -> None:
        """연결 자원 해제"""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class HttpxTransport(ApiTransport):
    """httpx.AsyncClient 기반 전송 구현체

    비JSON 오류 응답은 TransportError로, JSON 객체를 담은 오류 응답은
    그대로 반환하여 응답 파서가 서버 오류 형태를 해석하도록 합니다.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: 백엔드 API 기본 주소
            timeout: 요청 타임아웃 (초)
            client: 외부에서 관리하는 AsyncClient (선택)
            transport: httpx 하위 전송 계층 (테스트용 MockTransport 등)
        """
        if not base_url:
            raise ConfigurationError("서버 주소가 설정되지 않았습니다")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport
        )
        self._logger = logging.getLogger(__name__)

    async def post_json(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        api_traffic_logger.info(f"[REQUEST] -> POST {path} {json.dumps(mask_secrets(body), ensure_ascii=False)}")
        content = json.dumps(body, ensure_ascii=False).encode("utf-8")
        return await self._send("POST", path, content=content)

    async def get_json(self, path: str) -> Dict[str, Any]:
        api_traffic_logger.info(f"[REQUEST] -> GET {path}")
        return await self._send("GET", path)

    async def _send(self, method: str, path: str, content: Optional[bytes] = None) -> Dict[str, Any]:
        try:
            response = await self._client.request(
                method,
                path,
                content=content,
                headers={"Content-Type": "application/json"}
            )
        except httpx.TimeoutException as e:
            api_traffic_logger.error(f"[RESPONSE_ERROR] <- {method} {path} timeout")
            raise TransportError(f"{method} {path} 요청 시간 초과 ({self.timeout}s): {e}")
        except httpx.HTTPError as e:
            api_traffic_logger.error(f"[RESPONSE_ERROR] <- {method} {path} {type(e).__name__}: {e}")
            raise TransportError(f"{method} {path} 요청 실패: {e}")

        text = response.text
        api_traffic_logger.info(f"[RESPONSE] <- {method} {path} {response.status_code} {text[:500]}")

        try:
            payload = json.loads(text) if text else None
        except json.JSONDecodeError as e:
            if response.is_error:
                raise TransportError(
                    f"{method} {path} HTTP {response.status_code}: {text[:200]}",
                    status_code=response.status_code
                )
            raise ParseError(f"{method} {path} JSON 파싱 실패: {e}")

        if not isinstance(payload, dict):
            if response.is_error:
                raise TransportError(
                    f"{method} {path} HTTP {response.status_code}",
                    status_code=response.status_code
                )
            raise ParseError(f"{method} {path} 응답이 JSON 객체가 아닙니다")

        if response.is_error:
            self._logger.debug(f"HTTP {response.status_code} 오류 응답을 파서로 전달: {path}")
        return payload

    async def close(self) -> None:
        """클라이언트 연결 해제"""
        if self._owns_client:
            await self._client.aclose()
            self._logger.debug("HTTP 클라이언트 연결 해제 완료")


def create_transport(settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> HttpxTransport:
    """설정으로부터 httpx 전송 계층을 생성하는 팩토리 함수

    Args:
        settings: PlaymanitySettings 인스턴스
        transport: httpx 하위 전송 계층 (테스트용)
    """
    return HttpxTransport(
        base_url=settings.server_url,
        timeout=settings.request_timeout,
        transport=transport
    )
