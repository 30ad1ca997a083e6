"""
Configuration System
====================

Centralized, validated configuration management with typed dataclasses.
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, Union
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class OpenAIConfig:
    """Language model and image service settings."""

    api_key: Optional[str] = None
    story_model: str = "gpt-4o"
    image_model: str = "dall-e-3"
    request_timeout: float = 120.0


@dataclass
class KieConfig:
    """Settings for the Kie.ai job API (Kling video, Flux Kontext images)."""

    api_key: Optional[str] = None
    base_url: str = "https://api.kie.ai"
    request_timeout: float = 60.0


@dataclass
class VideoConfig:
    """Video generation settings."""

    provider: str = "mock"
    duration: int = 5
    sound: bool = True
    poll_interval: float = 5.0
    timeout: float = 600.0

    VALID_PROVIDERS = {"mock", "kling"}
    VALID_DURATIONS = {5, 10}

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.provider not in self.VALID_PROVIDERS:
            raise ConfigurationError(
                f"Invalid video provider: {self.provider}",
                config_key="video.provider",
            )
        if self.duration not in self.VALID_DURATIONS:
            raise ConfigurationError(
                f"Video duration must be 5 or 10 seconds, got {self.duration}",
                config_key="video.duration",
            )
        if self.poll_interval <= 0 or self.timeout <= 0:
            raise ConfigurationError(
                "poll_interval and timeout must be positive",
                config_key="video.poll_interval",
            )


@dataclass
class ImageConfig:
    """Scene and character image settings."""

    style: str = "cinematic"
    character_style: str = "realistic"
    aspect_ratio: str = "16:9"
    size: str = "1792x1024"
    quality: str = "standard"
    reference_model: str = "flux-kontext-max"
    reference_poll_interval: float = 3.0
    reference_timeout: float = 120.0

    VALID_STYLES = {"realistic", "anime", "cartoon", "cinematic"}
    VALID_ASPECT_RATIOS = {"1:1", "16:9", "9:16"}
    VALID_QUALITIES = {"standard", "hd"}

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        for key, value in (("style", self.style), ("character_style", self.character_style)):
            if value not in self.VALID_STYLES:
                raise ConfigurationError(
                    f"Invalid image style: {value}",
                    config_key=f"images.{key}",
                )
        if self.aspect_ratio not in self.VALID_ASPECT_RATIOS:
            raise ConfigurationError(
                f"Invalid aspect ratio: {self.aspect_ratio}",
                config_key="images.aspect_ratio",
            )
        if self.quality not in self.VALID_QUALITIES:
            raise ConfigurationError(
                f"Invalid image quality: {self.quality}",
                config_key="images.quality",
            )


@dataclass
class MockConfig:
    """Settings for the zero-network mock video provider."""

    duration_seconds: float = 30.0
    placeholder_url: str = "https://storage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4"


@dataclass
class StoryConfig:
    """Story generation settings."""

    default_scenes: int = 5
    video_length: str = "5s"
    max_tokens: int = 2000

    def __post_init__(self):
        if not 1 <= self.default_scenes <= 50:
            raise ConfigurationError(
                f"default_scenes must be 1-50, got {self.default_scenes}",
                config_key="story.default_scenes",
            )


@dataclass
class StorageConfig:
    """Persistence settings."""

    backend: str = "file"
    base_path: str = ".sidvid/data"
    blob_path: str = ".sidvid/images"
    db_name: str = "sidvid"
    embedded_kind: str = "sqlite"

    VALID_BACKENDS = {"memory", "file", "embedded"}
    VALID_EMBEDDED_KINDS = {"sqlite", "dbm"}

    def __post_init__(self):
        if self.backend not in self.VALID_BACKENDS:
            raise ConfigurationError(
                f"Invalid storage backend: {self.backend}",
                config_key="storage.backend",
            )
        if self.embedded_kind not in self.VALID_EMBEDDED_KINDS:
            raise ConfigurationError(
                f"Invalid embedded store kind: {self.embedded_kind}",
                config_key="storage.embedded_kind",
            )


@dataclass
class SessionConfig:
    """Session behaviour."""

    auto_save: bool = False


# =============================================================================
# Main Configuration Class
# =============================================================================


SECTIONS = ("openai", "kie", "video", "images", "mock", "story", "storage", "session")


@dataclass
class Config:
    """
    Main configuration container with validation and loading.

    Provides a unified interface to all configuration settings with:
    - Type-safe access to configuration values
    - Validation on load
    - Environment variable interpolation
    - Sensible defaults for all values
    """

    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    kie: KieConfig = field(default_factory=KieConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    mock: MockConfig = field(default_factory=MockConfig)
    story: StoryConfig = field(default_factory=StoryConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from file with environment variable interpolation.

        Args:
            path: Path to a YAML config file

        Returns:
            Validated Config instance
        """
        search_paths = [
            Path("./config/defaults.yaml"),
            Path("./sidvid.yaml"),
            Path.home() / ".sidvid" / "config.yaml",
        ]

        if path:
            search_paths.insert(0, Path(path))

        config_data = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.info(f"Loading config from: {search_path}")
                try:
                    with open(search_path, "r") as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in config file: {e}",
                        config_key=str(search_path),
                    )
        else:
            logger.info("No config file found, using defaults")

        config_data = cls._interpolate_env_vars(config_data)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        unknown = set(data) - set(SECTIONS)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration sections: {', '.join(sorted(unknown))}",
            )
        try:
            return cls(
                openai=OpenAIConfig(**(data.get("openai") or {})),
                kie=KieConfig(**(data.get("kie") or {})),
                video=VideoConfig(**(data.get("video") or {})),
                images=ImageConfig(**(data.get("images") or {})),
                mock=MockConfig(**(data.get("mock") or {})),
                story=StoryConfig(**(data.get("story") or {})),
                storage=StorageConfig(**(data.get("storage") or {})),
                session=SessionConfig(**(data.get("session") or {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            # Handle ${VAR} and ${VAR:-default} patterns
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            value = re.sub(pattern, replace, data)
            # An unset key should read as missing, not as an empty string
            return value if value or not re.search(pattern, data) else None
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {section: asdict(getattr(self, section)) for section in SECTIONS}


# =============================================================================
# Convenience Functions
# =============================================================================


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance (lazily loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = Config.load()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration to None (forces reload on next access)."""
    global _global_config
    _global_config = None
