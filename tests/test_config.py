"""
Tests for the configuration system.
"""

import pytest

from sidvid.core.config import Config, VideoConfig, StorageConfig, get_config, set_config, reset_config
from sidvid.core.exceptions import ConfigurationError


class TestConfigDefaults:
    """Defaults need no file and no environment."""

    def test_defaults(self):
        config = Config()

        assert config.video.provider == "mock"
        assert config.video.duration == 5
        assert config.video.poll_interval == 5.0
        assert config.video.timeout == 600.0
        assert config.images.style == "cinematic"
        assert config.images.character_style == "realistic"
        assert config.mock.duration_seconds == 30.0
        assert config.storage.backend == "file"
        assert config.session.auto_save is False

    def test_blob_path_is_outside_document_store(self):
        storage = StorageConfig()
        assert not storage.blob_path.startswith(storage.base_path + "/")

    def test_to_dict_has_every_section(self):
        data = Config().to_dict()
        assert set(data) == {"openai", "kie", "video", "images", "mock", "story", "storage", "session"}


class TestConfigValidation:

    def test_invalid_video_provider(self):
        with pytest.raises(ConfigurationError) as exc:
            VideoConfig(provider="sora")
        assert exc.value.details["config_key"] == "video.provider"

    def test_invalid_duration(self):
        with pytest.raises(ConfigurationError):
            VideoConfig(duration=7)

    def test_invalid_backend(self):
        with pytest.raises(ConfigurationError):
            StorageConfig(backend="redis")

    def test_unknown_section(self):
        with pytest.raises(ConfigurationError):
            Config.from_dict({"fal": {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            Config.from_dict({"video": {"fps": 24}})

    def test_invalid_image_style(self):
        with pytest.raises(ConfigurationError):
            Config.from_dict({"images": {"style": "watercolor"}})


class TestConfigLoading:

    def test_load_yaml_with_env_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KIE_API_KEY", "kie-secret")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        path = tmp_path / "sidvid.yaml"
        path.write_text(
            "kie:\n"
            "  api_key: ${KIE_API_KEY}\n"
            "openai:\n"
            "  api_key: ${OPENAI_API_KEY}\n"
            "video:\n"
            "  provider: ${VIDEO_PROVIDER:-kling}\n"
            "  duration: 10\n"
        )

        config = Config.load(path)

        assert config.kie.api_key == "kie-secret"
        assert config.openai.api_key is None
        assert config.video.provider == "kling"
        assert config.video.duration == 10

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("video: [unclosed\n")

        with pytest.raises(ConfigurationError):
            Config.load(path)

    def test_global_config(self):
        custom = Config.from_dict({"story": {"default_scenes": 3}})
        set_config(custom)
        try:
            assert get_config() is custom
        finally:
            reset_config()
