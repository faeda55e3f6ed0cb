#!/usr/bin/env python3
"""더미 Playmanity 백엔드 서버

테스트와 로컬 개발용 인메모리 백엔드입니다.
세션(시작/하트비트/종료), 광고, 디바이스 인증 엔드포인트를 흉내냅니다.

실행:
    python examples/dummy_backend_server.py
    PLAYMANITY_SERVER_URL=http://127.0.0.1:8100 python -m playmanity session --token demo
"""

import uuid
from typing import Dict, Optional, Set

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel


class SessionRequest(BaseModel):
    """세션 요청 모델"""
    auth_token: str = ""


class AdvertisementRequest(BaseModel):
    """광고 요청 모델"""
    game_uuid: str = ""
    auth_token: str = ""


class AuthInitiateRequest(BaseModel):
    """디바이스 인증 시작 요청 모델"""
    game_uuid: str = ""
    device_id: str = ""


class DummyBackendState:
    """인메모리 백엔드 상태

    테스트에서 직접 세션을 만료시키거나 인증을 승인/거부할 수 있습니다.
    """

    def __init__(self, auto_approve: bool = False):
        self.active_sessions: Set[str] = set()
        self.auth_requests: Dict[str, Dict[str, Optional[str]]] = {}
        self.auto_approve = auto_approve
        self.request_counts: Dict[str, int] = {}

    def count(self, name: str) -> None:
        self.request_counts[name] = self.request_counts.get(name, 0) + 1

    def expire(self, token: str) -> None:
        """서버 측 세션 만료"""
        self.active_sessions.discard(token)

    def approve(self, auth_id: str) -> str:
        """인증 승인 후 발급된 토큰 반환"""
        request = self.auth_requests[auth_id]
        request["status"] = "valid"
        request["token"] = request.get("token") or f"token-{uuid.uuid4().hex[:12]}"
        return request["token"]

    def deny(self, auth_id: str) -> None:
        self.auth_requests[auth_id]["status"] = "denied"


def _error(code: str, message: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}}
    )


def _no_active_session() -> JSONResponse:
    return _error("NO_ACTIVE_SESSION", "활성 세션이 없습니다")


def create_app(auto_approve: bool = False) -> FastAPI:
    """더미 백엔드 FastAPI 앱 생성

    Args:
        auto_approve: True면 인증 상태 첫 조회 시 자동 승인
    """
    app = FastAPI(title="Dummy Playmanity Backend")
    state = DummyBackendState(auto_approve=auto_approve)
    app.state.backend = state

    @app.post("/games/sessions/initiate")
    async def initiate_session(request: SessionRequest):
        state.count("initiate")
        if not request.auth_token:
            return _error("INVALID_TOKEN", "인증 토큰이 없습니다", status_code=401)
        state.active_sessions.add(request.auth_token)
        return {"success": True}

    @app.post("/games/sessions/heartbeat")
    async def heartbeat(request: SessionRequest):
        state.count("heartbeat")
        if request.auth_token not in state.active_sessions:
            return _no_active_session()
        return {"success": True}

    @app.post("/games/sessions/end")
    async def end_session(request: SessionRequest):
        state.count("end")
        if request.auth_token not in state.active_sessions:
            return _no_active_session()
        state.active_sessions.discard(request.auth_token)
        return {"success": True, "message": "세션이 종료되었습니다"}

    @app.post("/advertisements")
    async def advertisements(request: AdvertisementRequest):
        state.count("advertisements")
        if request.auth_token not in state.active_sessions:
            return _no_active_session()
        return {
            "ad": {
                "id": 1,
                "title": "Playmanity 데모 광고",
                "description": "더미 서버에서 제공하는 광고입니다",
                "type": "image",
                "campaign": 42,
                "url": "https://example.com/campaign/42",
                "media": "https://example.com/media/42.png",
                "isActive": True
            }
        }

    @app.post("/games/auth/initiate")
    async def auth_initiate(request: AuthInitiateRequest):
        state.count("auth_initiate")
        if not request.game_uuid or not request.device_id:
            return _error("INVALID_REQUEST", "game_uuid와 device_id가 필요합니다", status_code=400)
        auth_id = uuid.uuid4().hex
        state.auth_requests[auth_id] = {"status": "unresolved", "token": None, "device_id": request.device_id}
        return {"auth_id": auth_id, "auth_url": f"http://127.0.0.1:8100/games/auth/approve/{auth_id}"}

    @app.get("/games/auth/status/{auth_id}")
    async def auth_status(auth_id: str):
        state.count("auth_status")
        request = state.auth_requests.get(auth_id)
        if request is None:
            return _error("UNKNOWN_AUTH_ID", "알 수 없는 인증 요청입니다", status_code=404)
        if state.auto_approve and request["status"] == "unresolved":
            state.approve(auth_id)

        body = {"status": request["status"]}
        if request["status"] == "valid":
            body["token"] = request["token"]
        elif request["status"] == "denied":
            body["error"] = {"code": "AUTH_DENIED", "message": "사용자가 인증을 거부했습니다"}
        return body

    @app.get("/games/auth/approve/{auth_id}", response_class=HTMLResponse)
    async def auth_approve(auth_id: str):
        """브라우저에서 여는 승인 페이지 (열면 바로 승인)"""
        if auth_id not in state.auth_requests:
            return HTMLResponse("<h1>알 수 없는 인증 요청</h1>", status_code=404)
        state.approve(auth_id)
        return "<h1>인증 완료</h1><p>게임으로 돌아가세요.</p>"

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8100)
