"""
Core Module
===========

Configuration, exceptions, and security helpers for SidVid.
"""

from .config import (
    Config,
    OpenAIConfig,
    KieConfig,
    VideoConfig,
    ImageConfig,
    MockConfig,
    StoryConfig,
    StorageConfig,
    SessionConfig,
    get_config,
    set_config,
    reset_config,
)
from .exceptions import (
    SidVidError,
    ConfigurationError,
    ValidationError,
    SecurityError,
    ProviderError,
    InvalidProviderResponse,
    GenerationFailed,
    GenerationTimeout,
    NotFound,
    InvalidState,
    StorageError,
)
from .security import PathValidator, validate_storage_key, redact_api_key

__all__ = [
    # Configuration
    "Config",
    "OpenAIConfig",
    "KieConfig",
    "VideoConfig",
    "ImageConfig",
    "MockConfig",
    "StoryConfig",
    "StorageConfig",
    "SessionConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "SidVidError",
    "ConfigurationError",
    "ValidationError",
    "SecurityError",
    "ProviderError",
    "InvalidProviderResponse",
    "GenerationFailed",
    "GenerationTimeout",
    "NotFound",
    "InvalidState",
    "StorageError",
    # Security
    "PathValidator",
    "validate_storage_key",
    "redact_api_key",
]
