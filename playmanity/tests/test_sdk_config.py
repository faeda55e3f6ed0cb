"""SDK 설정 파일 테스트"""

import json

import pytest

from playmanity.config import (
    ConfigReader,
    PlaymanitySettings,
    SDKConfig,
    SDKConfigManager,
    create_config_manager
)


class DictConfigReader(ConfigReader):
    """메모리 딕셔너리에서 설정을 읽는 테스트용 구현체"""

    def __init__(self, data):
        self.data = data

    def read_sdk_config(self, source):
        return self.data


class TestSDKConfigManager:
    """SDK 설정 관리자 테스트"""

    def test_load_asset_format(self, tmp_path):
        path = tmp_path / "sdk.json"
        path.write_text(json.dumps({"gameUUID": "g-1", "serverURL": "https://s/api", "postAuthScene": 3}))

        manager = create_config_manager()
        config = manager.load(str(path))

        assert config == SDKConfig(game_uuid="g-1", server_url="https://s/api", post_auth_scene=3)
        assert manager.config is config

    def test_load_snake_case_format(self):
        manager = SDKConfigManager(DictConfigReader({"game_uuid": "g-2", "server_url": "https://s"}))
        config = manager.load("memory")
        assert config.game_uuid == "g-2"
        assert config.post_auth_scene == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="설정 파일 읽기 실패"):
            create_config_manager().load(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            create_config_manager().load(str(path))

    def test_non_object_root(self):
        with pytest.raises(ValueError):
            SDKConfigManager(DictConfigReader(["a"])).load("memory")

    def test_empty_game_uuid(self):
        with pytest.raises(ValueError, match="gameUUID"):
            SDKConfigManager(DictConfigReader({"gameUUID": " ", "serverURL": "https://s"})).load("memory")

    def test_apply_to_overrides_settings(self):
        settings = PlaymanitySettings(_env_file=None, game_uuid="env", server_url="http://env")
        manager = SDKConfigManager(DictConfigReader({"gameUUID": "asset", "serverURL": "https://asset/api/"}))

        assert manager.apply_to(settings) is settings

        manager.load("memory")
        updated = manager.apply_to(settings)
        assert updated.game_uuid == "asset"
        assert updated.server_url == "https://asset/api"
        assert settings.game_uuid == "env"
