"""Playmanity SDK 데이터 모델

백엔드와 주고받는 응답 구조와 세션 상태를 정의합니다.
각 모델은 단일 책임 원칙에 따라 하나의 응답 형태만 담당하며,
딕셔너리 페이로드에서 명시적인 조건 분기로 생성됩니다.
"""

from typing import Dict, Any, Optional, Union
from enum import Enum
from dataclasses import dataclass

from .errors import NO_ACTIVE_SESSION, ParseError, ServerRejection


class SessionState(str, Enum):
    """세션 상태 열거형"""
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    ENDING = "ending"


class AuthStatus(str, Enum):
    """디바이스 인증 상태"""
    VALID = "valid"
    DENIED = "denied"
    UNRESOLVED = "unresolved"


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError(f"JSON 객체가 아닌 응답입니다: {type(payload).__name__}")
    return payload


@dataclass
class ApiError:
    """서버 오류 응답의 error 필드"""
    code: str
    message: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiError":
        if isinstance(payload, dict):
            return cls(
                code=str(payload.get("code") or "UNKNOWN"),
                message=str(payload.get("message") or "")
            )
        # "error": "문자열" 형태도 허용
        return cls(code="UNKNOWN", message=str(payload))

    def to_exception(self) -> ServerRejection:
        return ServerRejection(self.code, self.message)


@dataclass
class ApiResponse:
    """세션 API 공통 응답

    단일 책임 원칙: 성공/실패 판정과 오류 코드 구분만 담당
    """
    success: bool
    message: Optional[str] = None
    error: Optional[ApiError] = None

    @classmethod
    def minimal_success(cls) -> "ApiResponse":
        """본문이 {"success": true} 뿐인 응답"""
        return cls(success=True)

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiResponse":
        """JSON 페이로드를 응답 객체로 변환합니다

        "error" 필드가 있으면 오류 형태로, {"success": true} 단독이면
        최소 성공 형태로, 그 외에는 일반 성공/실패 형태로 해석합니다.

        Raises:
            ParseError: 페이로드가 JSON 객체가 아닌 경우
        """
        data = _require_object(payload)

        if data.get("error") is not None:
            return cls(
                success=bool(data.get("success", False)),
                message=data.get("message"),
                error=ApiError.from_payload(data["error"])
            )

        if len(data) == 1 and data.get("success") is True:
            return cls.minimal_success()

        return cls(success=data.get("success") is True, message=data.get("message"))

    def is_success(self) -> bool:
        return self.success and self.error is None

    def is_no_active_session(self) -> bool:
        return self.error is not None and self.error.code == NO_ACTIVE_SESSION

    def describe(self) -> str:
        """로그용 요약 문자열"""
        if self.error is not None:
            return f"{self.error.code}: {self.error.message}"
        return self.message or ("success" if self.success else "success=false")


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class Advertisement:
    """광고 데이터

    요청 시점에만 조회되며 저장되지 않습니다.
    """
    id: int
    title: str
    description: str
    type: Union[str, int]
    campaign_id: int
    target_url: str
    media_url: str
    is_active: bool

    @classmethod
    def from_payload(cls, payload: Any) -> "Advertisement":
        """광고 JSON을 Advertisement로 변환합니다

        서버 필드명(campaign, url, media, isActive)과
        camelCase/snake_case 별칭을 모두 허용합니다.
        """
        data = _require_object(payload)
        try:
            return cls(
                id=int(_pick(data, "id", default=0)),
                title=str(_pick(data, "title", default="")),
                description=str(_pick(data, "description", default="")),
                type=_pick(data, "type", default=""),
                campaign_id=int(_pick(data, "campaign", "campaignId", "campaign_id", default=0)),
                target_url=str(_pick(data, "url", "targetUrl", "target_url", default="")),
                media_url=str(_pick(data, "media", "mediaUrl", "media_url", default="")),
                is_active=bool(_pick(data, "isActive", "is_active", default=False))
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise ParseError(f"광고 데이터 형식 오류: {e}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "campaign": self.campaign_id,
            "url": self.target_url,
            "media": self.media_url,
            "isActive": self.is_active
        }


@dataclass
class AuthInitResponse:
    """디바이스 인증 시작 응답"""
    auth_id: str
    auth_url: str

    @classmethod
    def from_payload(cls, payload: Any) -> "AuthInitResponse":
        data = _require_object(payload)
        if data.get("error") is not None:
            raise ApiError.from_payload(data["error"]).to_exception()

        auth_id = data.get("auth_id")
        auth_url = data.get("auth_url")
        if not auth_id or not auth_url:
            raise ParseError("인증 시작 응답에 auth_id 또는 auth_url이 없습니다")
        return cls(auth_id=str(auth_id), auth_url=str(auth_url))


@dataclass
class AuthStatusResponse:
    """디바이스 인증 상태 조회 응답"""
    status: AuthStatus
    token: Optional[str] = None
    error: Optional[ApiError] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "AuthStatusResponse":
        data = _require_object(payload)
        try:
            status = AuthStatus(str(data.get("status", "")).lower())
        except ValueError:
            raise ParseError(f"알 수 없는 인증 상태: {data.get('status')!r}")

        error = ApiError.from_payload(data["error"]) if data.get("error") is not None else None
        return cls(status=status, token=data.get("token"), error=error)
