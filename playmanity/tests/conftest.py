"""pytest 설정 파일

테스트 환경 설정과 공통 픽스처를 제공합니다.
"""

import sys
import asyncio
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

# 프로젝트 루트를 Python 경로에 추가 (pytest용, examples 더미 서버 import 포함)
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from playmanity.adapters import ApiTransport
from playmanity.config import PlaymanitySettings
from playmanity.sessions import SessionManager, set_session_manager


# pytest-asyncio 설정
pytest_plugins = ('pytest_asyncio',)


NO_ACTIVE_SESSION_RESPONSE = {
    "success": False,
    "error": {"code": "NO_ACTIVE_SESSION", "message": "No active session"}
}


@dataclass
class RecordedCall:
    """가짜 전송 계층이 기록한 요청"""
    method: str
    path: str
    body: Optional[Dict[str, Any]]
    at: float


class ScriptedTransport(ApiTransport):
    """경로별로 응답을 미리 지정하는 가짜 전송 계층

    script()로 넣은 응답을 순서대로 소비하고, 다 쓰면 기본 응답을 반환합니다.
    응답 자리에 예외 인스턴스를 넣으면 해당 요청에서 예외를 던집니다.
    """

    def __init__(self):
        self.responses: Dict[str, List[Any]] = defaultdict(list)
        self.defaults: Dict[str, Any] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[RecordedCall] = []
        self.closed = False

    def script(self, path: str, *responses: Any) -> "ScriptedTransport":
        self.responses[path].extend(responses)
        return self

    def set_default(self, path: str, response: Any) -> "ScriptedTransport":
        self.defaults[path] = response
        return self

    def calls_to(self, path: str) -> List[RecordedCall]:
        return [call for call in self.calls if call.path == path]

    def paths(self) -> List[str]:
        return [call.path for call in self.calls]

    async def post_json(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._respond("POST", path, body)

    async def get_json(self, path: str) -> Dict[str, Any]:
        return await self._respond("GET", path, None)

    async def close(self) -> None:
        self.closed = True

    async def _respond(self, method: str, path: str, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        self.calls.append(RecordedCall(method, path, dict(body) if body else body, asyncio.get_running_loop().time()))

        delay = self.delays.get(path)
        if delay:
            await asyncio.sleep(delay)

        queue = self.responses.get(path)
        item = queue.pop(0) if queue else self.defaults.get(path, {"success": True})
        if isinstance(item, BaseException):
            raise item
        return dict(item)


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """조건이 참이 될 때까지 대기 (테스트용 폴링 도우미)"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def transport():
    """스크립트화된 가짜 전송 계층 픽스처"""
    return ScriptedTransport()


@pytest.fixture
def fast_timings():
    """실제 타이밍(9s/10s/1s/1s)을 축소한 테스트용 타이밍"""
    return {
        "heartbeat_interval": 0.05,
        "init_retry_delay": 0.05,
        "reinit_delay": 0.02,
        "validity_grace": 0.02
    }


@pytest_asyncio.fixture
async def manager(transport, fast_timings):
    """토큰이 설정된 세션 관리자 픽스처 (테스트 종료 시 정리)"""
    session_manager = SessionManager(transport, "game-uuid-1", **fast_timings)
    session_manager.set_auth_token("test-token-123")
    yield session_manager
    await session_manager.close()
    set_session_manager(None)


@pytest.fixture
def settings(tmp_path):
    """외부 환경변수/.env 영향을 받지 않는 설정 픽스처"""
    return PlaymanitySettings(
        _env_file=None,
        server_url="http://testserver/api",
        game_uuid="game-uuid-1",
        device_id="device-1",
        auth_token="",
        heartbeat_interval=0.05,
        init_retry_delay=0.05,
        reinit_delay=0.02,
        validity_grace=0.02,
        auth_poll_interval=0.01
    )

