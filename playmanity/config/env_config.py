"""Playmanity SDK 환경변수 설정 모듈

모든 환경변수를 중앙에서 관리하고 타입 검증을 제공합니다.
단일 책임 원칙: 환경변수 설정 관리만 담당
개방-폐쇄 원칙: 새로운 환경변수 추가 시 기존 코드 수정 없이 확장 가능
"""

import os
from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, validator
from pydantic_settings import BaseSettings


DEFAULT_SERVER_URL = "https://app.playmanity.net/api"


class PlaymanitySettings(BaseSettings):
    """Playmanity SDK 환경변수 설정 클래스

    Pydantic BaseSettings를 사용하여 PLAYMANITY_ 접두사 환경변수를
    타입 안전하게 관리합니다.
    """

    # 백엔드 설정
    server_url: str = Field(default=DEFAULT_SERVER_URL, description="백엔드 API 기본 주소")
    game_uuid: str = Field(default="", description="게임 UUID")
    device_id: str = Field(default="", description="디바이스 식별자 (디바이스 인증용)")
    auth_token: str = Field(default="", description="미리 발급받은 인증 토큰 (선택)")

    # 세션 타이밍 설정 (초)
    request_timeout: float = Field(default=30.0, gt=0, description="요청 타임아웃")
    heartbeat_interval: float = Field(default=9.0, gt=0, description="하트비트 주기")
    init_retry_delay: float = Field(default=10.0, gt=0, description="세션 시작 재시도 간격")
    reinit_delay: float = Field(default=1.0, ge=0, description="세션 만료 후 재시작 지연")
    validity_grace: float = Field(default=1.0, ge=0, description="세션 시작 후 유효성 재확인 대기")
    auth_poll_interval: float = Field(default=1.0, gt=0, description="인증 상태 폴링 주기")

    # SDK 설정 파일 (gameUUID/serverURL을 담은 JSON)
    sdk_config_path: Optional[str] = Field(default=None, description="SDK 설정 JSON 파일 경로")

    # 로깅 설정
    log_level: str = Field(default="INFO", description="로그 레벨")
    api_log_file: Optional[str] = Field(default=None, description="API 트래픽 로그 파일 경로")

    class Config:
        """Pydantic 설정"""
        env_prefix = "PLAYMANITY_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False  # 환경변수 대소문자 구분 안함
        extra = "ignore"

    @validator("server_url")
    def validate_server_url(cls, v):
        """서버 주소 검증"""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"서버 주소는 http(s)://로 시작해야 합니다. 현재 값: {v}")
        return v

    @validator("log_level")
    def validate_log_level(cls, v):
        """로그 레벨 검증"""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"지원하지 않는 로그 레벨입니다: {v}")
        return level

    @validator("sdk_config_path")
    def validate_sdk_config_path(cls, v):
        """SDK 설정 파일 경로 검증"""
        if not v:
            return None
        # 상대 경로인 경우 절대 경로로 변환
        if not os.path.isabs(v):
            v = os.path.abspath(v)
        return v

    def has_sdk_config_file(self) -> bool:
        """SDK 설정 파일이 존재하는지 확인

        Returns:
            파일이 존재하고 .json 확장자면 True
        """
        if not self.sdk_config_path:
            return False
        path = Path(self.sdk_config_path)
        return path.is_file() and path.suffix == ".json"

    def get_session_timings(self) -> dict:
        """세션 관리자 타이밍 설정을 딕셔너리로 반환

        Returns:
            SessionManager 생성자 키워드 인자
        """
        return {
            "heartbeat_interval": self.heartbeat_interval,
            "init_retry_delay": self.init_retry_delay,
            "reinit_delay": self.reinit_delay,
            "validity_grace": self.validity_grace
        }


@lru_cache()
def get_settings() -> PlaymanitySettings:
    """환경변수 설정 인스턴스를 반환하는 싱글톤 함수

    lru_cache 데코레이터를 사용하여 한 번만 로드하고 재사용합니다.
    SDK 설정 파일이 지정되어 있으면 그 값을 덮어씁니다.

    Raises:
        ValueError: 잘못된 값이 있는 경우
    """
    try:
        settings = PlaymanitySettings()
    except Exception as e:
        raise ValueError(f"환경변수 설정 로드 실패: {e}")

    if settings.sdk_config_path:
        from .sdk_config import create_config_manager
        manager = create_config_manager()
        manager.load(settings.sdk_config_path)
        settings = manager.apply_to(settings)
    return settings


def reload_settings() -> PlaymanitySettings:
    """설정을 다시 로드합니다 (테스트용)

    캐시를 클리어하고 새로운 설정 인스턴스를 생성합니다.
    """
    get_settings.cache_clear()
    return get_settings()
