"""
Playmanity 게임 SDK 구현

이 패키지는 게임 프로세스가 Playmanity 백엔드와 하나의 세션을 유지하도록
세션 시작, 하트비트, 종료, 광고 조회, 디바이스 인증 기능을 제공합니다.
"""

__version__ = "1.0.0"
__author__ = "Playmanity SDK Team"

from .config import PlaymanitySettings, get_settings, SDKConfigManager, create_config_manager
from .adapters import ApiTransport, HttpxTransport, create_transport
from .sessions import SessionManager, get_session_manager, initialize_session_manager, shutdown_session_manager
from .events import EventBus, SessionEvent, SessionEventType
from .auth import DeviceAuthenticator, authenticate_and_start_session
from .ads import AdPlayback, AdRenderer
from .services import PlaymanityHost, create_host, run_host
from .models import Advertisement, ApiError, ApiResponse, AuthStatus, SessionState
from .errors import (
    PlaymanityError,
    ConfigurationError,
    TransportError,
    ParseError,
    ServerRejection,
    AuthenticationDenied
)

__all__ = [
    # 설정 관리
    "PlaymanitySettings",
    "get_settings",
    "SDKConfigManager",
    "create_config_manager",
    # 전송 계층
    "ApiTransport",
    "HttpxTransport",
    "create_transport",
    # 세션 관리
    "SessionManager",
    "get_session_manager",
    "initialize_session_manager",
    "shutdown_session_manager",
    # 이벤트
    "EventBus",
    "SessionEvent",
    "SessionEventType",
    # 인증 / 광고
    "DeviceAuthenticator",
    "authenticate_and_start_session",
    "AdPlayback",
    "AdRenderer",
    # 호스트
    "PlaymanityHost",
    "run_host",
    "create_host",
    # 모델
    "Advertisement",
    "ApiError",
    "ApiResponse",
    "AuthStatus",
    "SessionState",
    # 예외
    "PlaymanityError",
    "ConfigurationError",
    "TransportError",
    "ParseError",
    "ServerRejection",
    "AuthenticationDenied"
]
