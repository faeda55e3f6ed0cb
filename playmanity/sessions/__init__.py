"""세션 관리 패키지

백엔드 게임 세션의 시작, 하트비트 유지, 종료를 담당합니다.

주요 구성요소:
- SessionManager: 세션 생명주기와 하트비트 태스크 관리
- initialize_session_manager / shutdown_session_manager: 호스트 시작/종료 훅
"""

from .session_manager import (
    SessionManager,
    get_session_manager,
    set_session_manager,
    initialize_session_manager,
    shutdown_session_manager,
    SESSION_INITIATE_PATH,
    SESSION_HEARTBEAT_PATH,
    SESSION_END_PATH,
    ADVERTISEMENTS_PATH
)

__all__ = [
    'SessionManager',
    'get_session_manager',
    'set_session_manager',
    'initialize_session_manager',
    'shutdown_session_manager',
    'SESSION_INITIATE_PATH',
    'SESSION_HEARTBEAT_PATH',
    'SESSION_END_PATH',
    'ADVERTISEMENTS_PATH'
]
