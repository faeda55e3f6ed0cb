"""Playmanity SDK 설정 패키지

환경변수 설정과 SDK 설정 파일 관련 모듈들을 포함합니다.
"""

# 로깅 설정 모듈
from .logging_config import configure_logging

# 환경변수 설정 모듈
from .env_config import (
    DEFAULT_SERVER_URL,
    PlaymanitySettings,
    get_settings,
    reload_settings
)

# SDK 설정 파일 모듈
from .sdk_config import (
    SDKConfig,
    ConfigReader,
    JSONConfigReader,
    SDKConfigManager,
    create_config_manager
)

__all__ = [
    # 로깅 설정
    "configure_logging",
    # 환경변수 설정
    "DEFAULT_SERVER_URL",
    "PlaymanitySettings",
    "get_settings",
    "reload_settings",
    # SDK 설정 파일
    "SDKConfig",
    "ConfigReader",
    "JSONConfigReader",
    "SDKConfigManager",
    "create_config_manager"
]
