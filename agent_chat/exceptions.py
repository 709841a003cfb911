"""Domain exception hierarchy for the agent chat client."""

from __future__ import annotations

from typing import Any


class AgentChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ConfigValidationError(AgentChatError):
    """Raised when configuration cannot be validated safely."""


class ImageValidationError(AgentChatError):
    """Raised when a staged image fails type, size, or existence checks."""


class BackendError(AgentChatError):
    """Base class for failures talking to the backend service."""


class BackendConnectionError(BackendError):
    """Raised when the backend cannot be reached or the request timed out."""


class BackendPayloadError(BackendError):
    """Raised when a successful response does not have the expected shape."""


class BackendResponseError(BackendError):
    """Raised when the backend answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload: dict[str, Any] = payload or {}

    @property
    def detail(self) -> str:
        """Return the most specific human-readable reason in the payload."""
        for key in ("detail", "details", "message", "error"):
            value = self.payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict):
                for nested_key in ("message", "error"):
                    nested = value.get(nested_key)
                    if isinstance(nested, str) and nested.strip():
                        return nested.strip()
        return str(self)
