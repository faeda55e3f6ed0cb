"""Playmanity SDK 예외 정의

세션 클라이언트에서 발생하는 오류를 네 가지로 분류합니다.
- ConfigurationError: 토큰/서버 주소 누락 (호출자에게 그대로 전달, 재시도 없음)
- TransportError: 네트워크/타임아웃/HTTP 실패
- ParseError: 잘못된 JSON (TransportError와 동일하게 취급)
- ServerRejection: 서버가 정상 형식의 오류 응답을 반환한 경우
"""

from typing import Optional


NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"


class PlaymanityError(Exception):
    """SDK 최상위 예외"""


class ConfigurationError(PlaymanityError):
    """필수 설정(인증 토큰 등)이 없을 때 발생"""


class TransportError(PlaymanityError):
    """네트워크 전송 실패

    연결 실패, 타임아웃, JSON 본문이 없는 HTTP 오류 응답을 모두 포함합니다.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(TransportError):
    """응답 본문을 해석할 수 없을 때 발생"""


class ServerRejection(PlaymanityError):
    """서버가 오류 응답을 반환한 경우

    Args:
        code: 서버 오류 코드 (예: NO_ACTIVE_SESSION)
        message: 서버 오류 메시지
    """

    def __init__(self, code: str, message: str = ""):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message

    @property
    def is_no_active_session(self) -> bool:
        return self.code == NO_ACTIVE_SESSION


class AuthenticationDenied(PlaymanityError):
    """디바이스 인증이 거부되었을 때 발생"""
