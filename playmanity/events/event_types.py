"""세션 이벤트 타입 정의

세션 관리자가 호스트 애플리케이션에 알리는 이벤트들을 정의합니다.
각 이벤트는 콜백 인자로 전달되거나, 스트림 구독자에게 SessionEvent로 전달됩니다.
"""

from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
import json


class SessionEventType(Enum):
    """세션 이벤트 타입 열거형"""
    SESSION_STATE_CHANGED = "session_state_changed"  # 세션 유효성 변경 (bool)
    API_ERROR = "api_error"                          # API 호출 실패 (context, exception)


@dataclass
class SessionEvent:
    """스트림 구독자에게 전달되는 이벤트 데이터

    콜백 구독자는 args를 위치 인자로 그대로 받습니다.
    """
    type: SessionEventType
    args: tuple = ()
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def is_valid(self) -> Optional[bool]:
        """SESSION_STATE_CHANGED 이벤트의 유효성 값"""
        if self.type is SessionEventType.SESSION_STATE_CHANGED and self.args:
            return bool(self.args[0])
        return None

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        data: Dict[str, Any] = {"type": self.type.value, "timestamp": self.timestamp}
        if self.type is SessionEventType.SESSION_STATE_CHANGED:
            data["is_valid"] = self.is_valid
        elif self.type is SessionEventType.API_ERROR:
            context, error = (self.args + (None, None))[:2]
            data["context"] = context
            data["error"] = str(error) if error is not None else None
            data["error_type"] = type(error).__name__ if error is not None else None
        return data

    def to_json(self) -> str:
        """JSON 문자열로 변환"""
        return json.dumps(self.to_dict(), ensure_ascii=False)


def create_state_changed_event(is_valid: bool) -> SessionEvent:
    """세션 상태 변경 이벤트 생성"""
    return SessionEvent(type=SessionEventType.SESSION_STATE_CHANGED, args=(is_valid,))


def create_api_error_event(context: str, error: Exception) -> SessionEvent:
    """API 오류 이벤트 생성"""
    return SessionEvent(type=SessionEventType.API_ERROR, args=(context, error))
