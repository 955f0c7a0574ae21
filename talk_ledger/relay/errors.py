"""
Relay error taxonomy.

Each error carries the HTTP status the relay server answers with, so the
HTTP layer maps errors to responses without a lookup table.
"""

from typing import Any, Optional


class RelayError(Exception):
    """Base exception for relay failures."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RelayError):
    """The request carried no usable text (or a malformed anchor date)."""

    status_code = 400


class ConfigurationError(RelayError):
    """The classifier credential is not configured."""

    status_code = 500


class UpstreamError(RelayError):
    """
    The classifier call failed or answered with a non-success status.

    `body` is the upstream body (parsed JSON when possible, else text)
    and is propagated to the caller unchanged.
    """

    def __init__(self, status_code: int, body: Any, message: Optional[str] = None):
        self.body = body
        super().__init__(
            message or f"Gemini API 오류 (HTTP {status_code}): {body}",
            status_code=status_code,
        )

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class UpstreamFormatError(RelayError):
    """The classifier answered 2xx but the body is not a JSON envelope."""

    status_code = 502
