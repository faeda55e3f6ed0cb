"""SDK 설정 파일 관리 모듈

게임 빌드에 포함되는 SDK 설정 파일(gameUUID, serverURL, postAuthScene)을
읽어 환경변수 설정 위에 덮어씁니다.
SOLID 원칙을 따라 단일 책임 원칙과 의존성 역전 원칙을 적용했습니다.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Any
from abc import ABC, abstractmethod
import logging

from .env_config import PlaymanitySettings

logger = logging.getLogger(__name__)


@dataclass
class SDKConfig:
    """SDK 설정 파일 내용

    단일 책임 원칙: 게임 식별 정보와 서버 주소만을 담당
    """
    game_uuid: str
    server_url: str
    post_auth_scene: int = 1

    def __post_init__(self):
        """설정 유효성 검증"""
        if not self.game_uuid.strip():
            raise ValueError("SDK 설정의 gameUUID가 비어있습니다")
        if not self.server_url.strip():
            raise ValueError("SDK 설정의 serverURL이 비어있습니다")


class ConfigReader(ABC):
    """설정 읽기 인터페이스

    개방-폐쇄 원칙: 새로운 설정 소스를 추가할 때
    기존 코드 수정 없이 확장 가능
    """

    @abstractmethod
    def read_sdk_config(self, source: str) -> Dict[str, Any]:
        """설정 소스에서 SDK 설정을 읽어옵니다"""
        pass


class JSONConfigReader(ConfigReader):
    """JSON 파일에서 설정을 읽는 구현체"""

    def read_sdk_config(self, source: str) -> Dict[str, Any]:
        """JSON 파일에서 SDK 설정을 읽어옵니다

        Args:
            source: JSON 설정 파일 경로

        Raises:
            FileNotFoundError: 설정 파일이 없을 때
            json.JSONDecodeError: JSON 형식이 잘못되었을 때
        """
        config_path = Path(source)

        if not config_path.exists():
            raise FileNotFoundError(f"설정 파일을 찾을 수 없습니다: {source}")

        with open(config_path, 'r', encoding='utf-8') as f:
            return json.load(f)


class SDKConfigManager:
    """SDK 설정 관리자

    의존성 역전 원칙: ConfigReader 추상화에 의존하여 구체적인 구현에 독립적
    """

    def __init__(self, config_reader: ConfigReader):
        """
        Args:
            config_reader: 설정을 읽을 ConfigReader 구현체
        """
        self._config_reader = config_reader
        self._config: Optional[SDKConfig] = None

    def load(self, config_path: str) -> SDKConfig:
        """설정 파일을 로드합니다

        gameUUID/serverURL(원본 에셋 형식)과 game_uuid/server_url 두 형식을 지원합니다.

        Raises:
            ValueError: 파일이 없거나 형식이 잘못되었을 때
        """
        try:
            data = self._config_reader.read_sdk_config(config_path)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            raise ValueError(f"설정 파일 읽기 실패: {e}")

        if not isinstance(data, dict):
            raise ValueError("설정 파일 최상위는 JSON 객체여야 합니다")

        self._config = SDKConfig(
            game_uuid=str(data.get("gameUUID", data.get("game_uuid", ""))),
            server_url=str(data.get("serverURL", data.get("server_url", ""))),
            post_auth_scene=int(data.get("postAuthScene", data.get("post_auth_scene", 1)))
        )
        logger.info(f"SDK 설정 로드됨: {config_path} (game_uuid={self._config.game_uuid})")
        return self._config

    @property
    def config(self) -> Optional[SDKConfig]:
        return self._config

    def apply_to(self, settings: PlaymanitySettings) -> PlaymanitySettings:
        """로드된 설정을 환경변수 설정 위에 덮어쓴 새 인스턴스를 반환합니다"""
        if self._config is None:
            return settings
        return settings.copy(update={
            "game_uuid": self._config.game_uuid,
            "server_url": self._config.server_url.rstrip("/")
        })


def create_config_manager() -> SDKConfigManager:
    """JSON 파일 읽기 방식의 기본 설정 관리자를 생성합니다"""
    return SDKConfigManager(JSONConfigReader())
