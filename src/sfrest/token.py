"""Immutable OAuth credential bundle returned by a token endpoint."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .exceptions import AuthError, AuthErrorKind


def mask_secret(value: Optional[str]) -> str:
    """Return a short preview of a secret: first 10 and last 6 chars."""
    if not value:
        return ""
    if len(value) <= 16:
        return "*" * len(value)
    return f"{value[:10]}...{value[-6:]}"


@dataclass(frozen=True)
class Token:
    access_token: str
    instance_url: str
    id: Optional[str] = None
    issued_at: Optional[str] = None
    signature: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> Token:
        """Build a token from a ``/services/oauth2/token`` JSON payload."""
        access_token = payload.get("access_token")
        instance_url = payload.get("instance_url")
        if not access_token or not instance_url:
            raise AuthError(
                AuthErrorKind.UNKNOWN,
                "Token response is missing access_token or instance_url",
            )
        return cls(
            access_token=access_token,
            instance_url=instance_url.rstrip("/"),
            id=payload.get("id"),
            issued_at=payload.get("issued_at"),
            signature=payload.get("signature"),
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type") or "Bearer",
            scope=payload.get("scope"),
        )

    @property
    def issue_time(self) -> Optional[datetime]:
        # Salesforce sends milliseconds since the epoch, as a string
        if not self.issued_at:
            return None
        try:
            return datetime.fromtimestamp(int(self.issued_at) / 1000, tz=timezone.utc)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def __repr__(self) -> str:
        return (
            f"Token(access_token={mask_secret(self.access_token)!r}, "
            f"instance_url={self.instance_url!r}, id={self.id!r}, "
            f"issued_at={self.issued_at!r}, "
            f"refresh_token={mask_secret(self.refresh_token) or None!r})"
        )

    __str__ = __repr__
