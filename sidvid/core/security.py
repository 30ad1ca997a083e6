"""
Security Utilities
==================

Storage key validation, blob path validation, and log redaction.
"""

import re
import logging
from pathlib import Path
from typing import Optional, Union

from .exceptions import SecurityError

logger = logging.getLogger(__name__)


# Storage keys are "/"-separated segments of these characters
_KEY_SEGMENT = re.compile(r"^[A-Za-z0-9_\-.]+$")


def validate_storage_key(key: str) -> str:
    """
    Validate a storage key such as ``sessions/abc-123``.

    Keys map onto file paths and embedded-store rows, so every segment must be
    a plain name: no empty segments, no ``.``/``..``, no separators other
    than ``/``.

    Raises:
        SecurityError: If the key could escape the store root
    """
    if not key or key.startswith("/") or "\x00" in key:
        raise SecurityError(
            f"Invalid storage key: {key!r}",
            attempted_path=key,
            security_type="invalid_key",
        )

    for segment in key.split("/"):
        if segment in ("", ".", "..") or not _KEY_SEGMENT.match(segment):
            logger.warning(f"Blocked storage key segment: {segment!r}")
            raise SecurityError(
                f"Invalid storage key: {key!r}",
                attempted_path=key,
                security_type="path_traversal",
            )

    return key


class PathValidator:
    """
    Keeps blob paths inside one root directory.

    Usage:
        validator = PathValidator(base_path=".sidvid/images")
        safe_path = validator.validate_image("session-1/abc.png")  # OK
        safe_path = validator.validate("../../etc/passwd")  # Raises SecurityError
    """

    IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path).resolve()

    def validate(self, path: Union[str, Path]) -> Path:
        """
        Resolve a relative blob path under the base directory.

        Every segment must pass the storage-key rules, so encoded or
        Windows-style traversal never reaches the filesystem.

        Raises:
            SecurityError: If the path is absolute or escapes the base directory
        """
        path_str = Path(path).as_posix()
        if Path(path_str).is_absolute() or path_str.startswith("~"):
            raise SecurityError(
                "Absolute paths are not allowed",
                attempted_path=path_str,
                security_type="path_traversal",
            )
        validate_storage_key(path_str)

        resolved = (self.base_path / path_str).resolve()
        if self.base_path not in resolved.parents:
            logger.warning(f"Blocked blob path outside {self.base_path}")
            raise SecurityError(
                "Path is outside allowed directory",
                attempted_path=path_str,
                security_type="path_traversal",
            )
        return resolved

    def validate_image(self, path: Union[str, Path]) -> Path:
        """Validate a blob path that must name an image file."""
        resolved = self.validate(path)
        if resolved.suffix.lower() not in self.IMAGE_EXTENSIONS:
            raise SecurityError(
                f"Not a valid image extension: {resolved.suffix}",
                attempted_path=str(path),
                security_type="invalid_extension",
            )
        return resolved


def redact_api_key(text: str) -> str:
    """
    Redact API keys and sensitive tokens from text.

    Args:
        text: Text that might contain API keys

    Returns:
        Text with API keys redacted
    """
    if not text:
        return text

    patterns = [
        # Generic Bearer tokens
        (r"Bearer\s+[A-Za-z0-9_\-\.]+", "Bearer ***REDACTED***"),
        # OpenAI keys
        (r"sk-[A-Za-z0-9_\-]{8,}", "sk-***REDACTED***"),
        # Generic API key patterns
        (r"api[_-]?key['\"]?\s*[:=]\s*['\"]?[A-Za-z0-9_\-]+", "api_key: ***REDACTED***"),
        # Environment variable patterns
        (r"(OPENAI_API_KEY|KIE_API_KEY)=[^\s]+", r"\1=***REDACTED***"),
    ]

    result = text
    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE)

    return result


def truncate_for_log(text: Optional[str], limit: int = 100) -> str:
    """Shorten prompts before logging them."""
    if not text:
        return ""
    return text if len(text) <= limit else f"{text[:limit]}..."
