from __future__ import annotations

from enum import Enum
from typing import List, Optional


class SFRestError(RuntimeError):
    """Base class for every error raised by sfrest."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        response: Optional[str] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.response = response
        text = f"{error_code}: {message}" if error_code else message
        super().__init__(text)


class AuthErrorKind(str, Enum):
    """OAuth ``error`` values returned by the token endpoint."""

    INVALID_CLIENT_ID = "invalid_client_id"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    INACTIVE_USER = "inactive_user"
    INACTIVE_ORG = "inactive_org"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> AuthErrorKind:
        try:
            return cls(value or "")
        except ValueError:
            return cls.UNKNOWN


class AuthError(SFRestError):
    """Raised when the auth endpoint refuses to mint a token."""

    def __init__(
        self,
        kind: AuthErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        response: Optional[str] = None,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message, error_code=kind.value, response=response)


class TokenException(SFRestError):
    """Raised when a cached token is rejected (expired or revoked session)."""

    def __init__(
        self,
        error_code: str,
        message: str,
        response: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, error_code=error_code, response=response)


class RemoteApiError(SFRestError):
    """Any other non-success response from the REST API."""

    def __init__(
        self,
        status_code: Optional[int],
        error_code: Optional[str],
        message: str,
        response: Optional[str] = None,
    ):
        self.status_code = status_code
        super().__init__(message, error_code=error_code, response=response)


class TransportError(SFRestError):
    """Network-level failure (connection refused, DNS, timeout)."""


class MissingCredentialsError(SFRestError):
    """Raised when the required Salesforce settings are not present."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__("Missing required settings: " + ", ".join(missing))


class ConfigError(SFRestError):
    """Invalid configuration value."""


class CursorExhaustedError(SFRestError):
    """``next_page`` was called on a cursor whose result set is already done."""
