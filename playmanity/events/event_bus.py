"""세션 이벤트 버스

콜백 구독과 비동기 스트림 구독을 함께 제공합니다.
콜백에서 발생한 예외는 로그로만 남기고 세션 루프로 전파하지 않습니다.
"""

import asyncio
import inspect
import logging
import uuid
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from .event_types import (
    SessionEvent,
    SessionEventType,
    create_api_error_event,
    create_state_changed_event
)


logger = logging.getLogger(__name__)

EventCallback = Callable[..., Any]


class EventSubscription:
    """개별 스트림 구독을 나타내는 클래스"""

    def __init__(self, subscription_id: str, max_queue_size: int = 100):
        self.subscription_id = subscription_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self.is_active = True

    def push(self, event: SessionEvent) -> bool:
        """이벤트를 큐에 추가 (가득 찬 경우 가장 오래된 이벤트를 버림)"""
        if not self.is_active:
            return False
        if self.queue.full():
            self.queue.get_nowait()
            logger.warning(f"이벤트 큐가 가득 차 오래된 이벤트를 버렸습니다 (구독: {self.subscription_id})")
        self.queue.put_nowait(event)
        return True

    def close(self):
        """구독 종료 (대기 중인 스트림을 깨우기 위해 None을 넣음)"""
        if not self.is_active:
            return
        self.is_active = False
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(None)


class EventBus:
    """세션 이벤트 버스

    단일 책임 원칙: 이벤트 구독자 관리와 전달만 담당
    """

    def __init__(self):
        self._callbacks: Dict[SessionEventType, List[EventCallback]] = {
            event_type: [] for event_type in SessionEventType
        }
        self._subscriptions: Dict[str, EventSubscription] = {}
        self._pending: set = set()
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_type: SessionEventType, callback: EventCallback) -> Callable[[], None]:
        """이벤트 콜백 등록

        Args:
            event_type: 구독할 이벤트 타입
            callback: 동기 함수 또는 코루틴 함수

        Returns:
            구독 해제 함수
        """
        self._callbacks[event_type].append(callback)
        return lambda: self.unsubscribe(event_type, callback)

    def unsubscribe(self, event_type: SessionEventType, callback: EventCallback) -> bool:
        """이벤트 콜백 해제"""
        try:
            self._callbacks[event_type].remove(callback)
            return True
        except ValueError:
            return False

    def on_session_state_changed(self, callback: Callable[[bool], Any]) -> Callable[[], None]:
        """session_state_changed(is_valid) 구독 편의 함수"""
        return self.subscribe(SessionEventType.SESSION_STATE_CHANGED, callback)

    def on_api_error(self, callback: Callable[[str, Exception], Any]) -> Callable[[], None]:
        """api_error(context, error) 구독 편의 함수"""
        return self.subscribe(SessionEventType.API_ERROR, callback)

    def emit(self, event: SessionEvent) -> None:
        """이벤트를 모든 구독자에게 전달"""
        for callback in list(self._callbacks[event.type]):
            try:
                result = callback(*event.args)
                if inspect.isawaitable(result):
                    self._track(asyncio.ensure_future(result))
            except Exception as e:
                self._logger.error(f"이벤트 콜백 오류 ({event.type.value}): {e}")

        for subscription in list(self._subscriptions.values()):
            subscription.push(event)

    def emit_state_changed(self, is_valid: bool) -> None:
        self.emit(create_state_changed_event(is_valid))

    def emit_api_error(self, context: str, error: Exception) -> None:
        self.emit(create_api_error_event(context, error))

    def _track(self, future: asyncio.Future) -> None:
        """비동기 콜백 완료 추적 및 예외 로깅"""
        self._pending.add(future)

        def _done(f: asyncio.Future):
            self._pending.discard(f)
            if not f.cancelled() and f.exception() is not None:
                self._logger.error(f"비동기 이벤트 콜백 오류: {f.exception()}")

        future.add_done_callback(_done)

    async def drain(self) -> None:
        """대기 중인 비동기 콜백이 모두 끝날 때까지 기다림"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def stream(self, subscription_id: Optional[str] = None) -> AsyncIterator[SessionEvent]:
        """이벤트 스트림 구독

        async for 루프가 끝나거나 중단되면 구독이 자동으로 해제됩니다.
        """
        subscription_id = subscription_id or f"sub_{uuid.uuid4().hex[:8]}"
        subscription = EventSubscription(subscription_id)
        self._subscriptions[subscription_id] = subscription
        self._logger.debug(f"이벤트 스트림 구독: {subscription_id}")
        try:
            while True:
                event = await subscription.queue.get()
                if event is None:
                    break
                yield event
        finally:
            subscription.close()
            self._subscriptions.pop(subscription_id, None)
            self._logger.debug(f"이벤트 스트림 구독 해제: {subscription_id}")

    def close_streams(self) -> None:
        """모든 스트림 구독 종료"""
        for subscription in self._subscriptions.values():
            subscription.close()

    def get_subscriber_count(self) -> int:
        """등록된 콜백과 스트림 구독 수"""
        callbacks = sum(len(cbs) for cbs in self._callbacks.values())
        return callbacks + len(self._subscriptions)
