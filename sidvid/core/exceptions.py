"""
Custom Exceptions
=================

Unified exception hierarchy for the generation-orchestration layer.

Every error carries the operation and target id in its message so it can
be shown to a user without rewriting.
"""

from typing import Optional, Dict, Any


class SidVidError(Exception):
    """Base exception for all SidVid errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(SidVidError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(message, details=details, **kwargs)


class ValidationError(SidVidError):
    """Invalid caller input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]
        if constraint:
            details["constraint"] = constraint
        super().__init__(message, details=details, **kwargs)


class SecurityError(SidVidError):
    """A storage key or blob path tried to escape its root."""

    def __init__(
        self,
        message: str,
        attempted_path: Optional[str] = None,
        security_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if attempted_path:
            # Don't expose full paths in error details
            details["attempted_path"] = "***REDACTED***"
        if security_type:
            details["security_type"] = security_type
        super().__init__(message, recoverable=False, details=details, **kwargs)


class ProviderError(SidVidError):
    """A remote API returned a non-success result or a malformed payload."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        if response_body:
            # Truncate large responses
            details["response_body"] = response_body[:500] if len(response_body) > 500 else response_body
        if operation:
            details["operation"] = operation
        self.provider = provider
        self.status_code = status_code
        super().__init__(message, details=details, **kwargs)


class InvalidProviderResponse(ProviderError):
    """A provider answered, but the payload could not be interpreted."""


class GenerationFailed(SidVidError):
    """A remote job reached a terminal failure state."""

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        provider: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if job_id:
            details["job_id"] = job_id
        if provider:
            details["provider"] = provider
        self.job_id = job_id
        super().__init__(message, details=details, **kwargs)


class GenerationTimeout(SidVidError):
    """A wait loop ran out of time. The remote job may still be running."""

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        last_status: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if job_id:
            details["job_id"] = job_id
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        if last_status:
            details["last_status"] = last_status
        self.job_id = job_id
        super().__init__(message, recoverable=True, details=details, **kwargs)


class NotFound(SidVidError):
    """An unknown id was passed to a by-id accessor."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message, recoverable=False, details=details, **kwargs)


class InvalidState(SidVidError):
    """An operation's precondition is not met."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        self.operation = operation
        super().__init__(message, details=details, **kwargs)


class StorageError(SidVidError):
    """A stored document exists but cannot be read back."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key
        super().__init__(message, details=details, **kwargs)
