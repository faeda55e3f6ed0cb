"""광고 재생 컨트롤러

광고를 조회하여 정해진 시간 동안 표시하고 진행률을 콜백으로 알립니다.
재생은 취소 가능한 asyncio 태스크로 실행되며, 시작하면 AdPlaybackHandle을 반환합니다.
실제 화면 표시는 호스트가 제공하는 AdRenderer가 담당합니다.
"""

import asyncio
import inspect
import logging
import webbrowser
from typing import Any, Callable, Optional

from ..models import Advertisement

logger = logging.getLogger(__name__)

AdEventHandler = Callable[..., Any]          # (success: bool, message: str = "")
AdProgressHandler = Callable[[float], Any]   # (progress: 0.0 ~ 1.0)


class AdRenderer:
    """광고 표시 인터페이스

    호스트 UI가 필요한 메서드만 오버라이드합니다. 기본 구현은 아무것도 하지 않습니다.
    """

    async def load_media(self, media_url: str) -> bool:
        """광고 이미지 로드. 실패하면 False"""
        return True

    def show(self, ad: Advertisement) -> None:
        pass

    def update_progress(self, remaining: float) -> None:
        """남은 비율 (1.0 → 0.0)"""
        pass

    def hide(self) -> None:
        pass


class NullAdRenderer(AdRenderer):
    """화면 없이 재생 흐름만 실행하는 렌더러"""


class AdPlaybackHandle:
    """광고 재생 핸들

    await하면 재생 완료 여부(bool)를 반환합니다.
    """

    def __init__(self, task: asyncio.Task):
        self._task = task

    def cancel(self) -> bool:
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    def __await__(self):
        return self._task.__await__()


class AdPlayback:
    """광고 재생 컨트롤러

    단일 책임 원칙: 광고 조회, 표시 시간 관리, 진행률 보고만 담당
    한 번에 하나의 광고만 재생합니다.
    """

    def __init__(self, session_manager, renderer: Optional[AdRenderer] = None, tick_interval: float = 0.1):
        """
        Args:
            session_manager: 광고 조회에 사용할 SessionManager
            renderer: 광고 표시 구현체 (없으면 NullAdRenderer)
            tick_interval: 진행률 보고 주기 (초)
        """
        self._session_manager = session_manager
        self._renderer = renderer or NullAdRenderer()
        self.tick_interval = tick_interval
        self._displaying = False
        self._current_ad: Optional[Advertisement] = None
        self._current_task: Optional[asyncio.Task] = None
        self._logger = logging.getLogger(f"{__name__}.AdPlayback")

    @property
    def is_displaying(self) -> bool:
        return self._displaying

    @property
    def current_ad(self) -> Optional[Advertisement]:
        return self._current_ad

    def start(
        self,
        duration: float,
        on_started: Optional[AdEventHandler] = None,
        on_completed: Optional[AdEventHandler] = None,
        on_failed: Optional[AdEventHandler] = None,
        on_progress: Optional[AdProgressHandler] = None
    ) -> AdPlaybackHandle:
        """광고 재생 시작

        Args:
            duration: 표시 시간 (초)
            on_started: 표시 시작 콜백 (True)
            on_completed: 완료 콜백 (True, 또는 수동 중지 시 False와 메시지)
            on_failed: 실패 콜백 (False, 메시지)
            on_progress: 진행률 콜백 (0.0 → 1.0)

        Returns:
            재생 핸들
        """
        if self._displaying:
            self._logger.warning("이미 광고를 표시하고 있습니다")
            return AdPlaybackHandle(asyncio.ensure_future(
                self._reject(on_failed, "An ad is already being displayed.")
            ))

        self._displaying = True
        task = asyncio.ensure_future(
            self._play(duration, on_started, on_completed, on_failed, on_progress)
        )
        # 시작 전에 취소된 경우에도 상태가 풀리도록 완료 콜백에서 정리
        task.add_done_callback(self._reset)
        self._current_task = task
        return AdPlaybackHandle(task)

    async def _reject(self, on_failed, message: str) -> bool:
        await _invoke(on_failed, False, message)
        return False

    async def _play(self, duration, on_started, on_completed, on_failed, on_progress) -> bool:
        shown = False
        try:
            ad = await self._session_manager.get_advertisement()
            if ad is None:
                return await self._fail(on_failed, "No advertisement retrieved.")

            self._current_ad = ad
            self._logger.info(f"광고 표시: {ad.title} ({duration}초)")

            try:
                loaded = await self._renderer.load_media(ad.media_url)
            except Exception as e:
                self._logger.error(f"광고 이미지 로드 오류: {e}")
                loaded = False
            if not loaded:
                return await self._fail(on_failed, "Failed to load ad image.")

            self._renderer.show(ad)
            shown = True
            await _invoke(on_started, True)

            await self._run_timer(duration, on_progress)

            self._renderer.hide()
            shown = False
            self._logger.info("광고 표시 시간 종료")
            await _invoke(on_completed, True)
            return True
        except asyncio.CancelledError:
            if shown:
                self._renderer.hide()
            self._logger.info("현재 광고가 수동으로 중지되었습니다")
            await _invoke(on_completed, False, "Ad stopped manually")
            raise
        finally:
            self._reset()

    def _reset(self, task: Optional[asyncio.Task] = None) -> None:
        if task is not None and self._current_task is not None and task is not self._current_task:
            return
        self._displaying = False
        self._current_ad = None
        self._current_task = None

    async def _run_timer(self, duration: float, on_progress: Optional[AdProgressHandler]) -> None:
        """duration 동안 tick마다 진행률 보고"""
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        self._renderer.update_progress(1.0)

        while True:
            elapsed = loop.time() - started_at
            progress = 1.0 if duration <= 0 else min(elapsed / duration, 1.0)
            self._renderer.update_progress(1.0 - progress)
            await _invoke(on_progress, progress)
            if progress >= 1.0:
                return
            await asyncio.sleep(min(self.tick_interval, duration - elapsed))

    async def _fail(self, on_failed, message: str) -> bool:
        self._logger.warning(message)
        await _invoke(on_failed, False, message)
        return False

    async def stop(self) -> bool:
        """현재 재생 중인 광고 중지

        Returns:
            중지한 재생이 있으면 True
        """
        task = self._current_task
        if task is None or task.done():
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return True

    def open_target(self, opener: Optional[Callable[[str], Any]] = None) -> bool:
        """현재 광고의 대상 URL 열기"""
        if self._current_ad is None or not self._current_ad.target_url:
            return False
        (opener or webbrowser.open)(self._current_ad.target_url)
        return True


async def _invoke(callback: Optional[Callable[..., Any]], *args) -> None:
    """동기/비동기 콜백 호출 (콜백 예외는 로그만 남김)"""
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"광고 콜백 오류: {e}")
