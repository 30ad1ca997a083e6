"""
Tests for storage key validation, path validation and log redaction.
"""

import pytest

from sidvid.core.exceptions import SecurityError
from sidvid.core.security import (
    PathValidator,
    validate_storage_key,
    redact_api_key,
    truncate_for_log,
)


class TestValidateStorageKey:

    @pytest.mark.parametrize("key", ["sessions/abc-123", "index/projects", "proj-1", "a.b_c/d"])
    def test_valid_keys(self, key):
        assert validate_storage_key(key) == key

    @pytest.mark.parametrize(
        "key",
        ["", "/etc/passwd", "sessions/../secrets", "sessions//x", "./x", "a/b c", "nul\x00byte", "a\\b"],
    )
    def test_rejected_keys(self, key):
        with pytest.raises(SecurityError):
            validate_storage_key(key)


class TestPathValidator:

    def test_valid_image_path(self, tmp_path):
        validator = PathValidator(tmp_path)
        resolved = validator.validate_image("session-1/abc.png")
        assert resolved == (tmp_path / "session-1" / "abc.png").resolve()

    def test_traversal_blocked(self, tmp_path):
        validator = PathValidator(tmp_path)
        with pytest.raises(SecurityError):
            validator.validate("../outside.png")

    def test_absolute_path_blocked(self, tmp_path):
        validator = PathValidator(tmp_path)
        with pytest.raises(SecurityError):
            validator.validate("/tmp/file.png")

    def test_non_image_extension(self, tmp_path):
        validator = PathValidator(tmp_path)
        with pytest.raises(SecurityError) as exc:
            validator.validate_image("session-1/notes.txt")
        assert exc.value.details["security_type"] == "invalid_extension"


class TestRedaction:

    def test_bearer_token(self):
        assert "abc123" not in redact_api_key("Authorization: Bearer abc123")

    def test_openai_key(self):
        redacted = redact_api_key("invalid key sk-proj-1234567890abcdef")
        assert "1234567890abcdef" not in redacted
        assert "REDACTED" in redacted

    def test_env_assignment(self):
        assert redact_api_key("KIE_API_KEY=secret-value") == "KIE_API_KEY=***REDACTED***"

    def test_empty(self):
        assert redact_api_key("") == ""

    def test_truncate(self):
        assert truncate_for_log("x" * 150).endswith("...")
        assert truncate_for_log("short") == "short"
        assert truncate_for_log(None) == ""
