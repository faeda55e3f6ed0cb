"""이벤트 모듈

세션 상태 변경과 API 오류를 호스트 애플리케이션에 전달합니다.
"""

from .event_types import (
    SessionEventType,
    SessionEvent,
    create_state_changed_event,
    create_api_error_event
)

from .event_bus import (
    EventSubscription,
    EventBus
)

__all__ = [
    # 이벤트 타입
    'SessionEventType',
    'SessionEvent',
    'create_state_changed_event',
    'create_api_error_event',

    # 이벤트 버스
    'EventSubscription',
    'EventBus'
]
