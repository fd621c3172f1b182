"""OAuth token providers.

Each provider mints a fresh :class:`~sfrest.token.Token` per call to
:meth:`request_token`. Providers never cache; that is the job of a
:class:`~sfrest.storage.TokenStorage`.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable
from urllib.parse import urlencode

import requests
from jose import jwt

from .config import Environment, SFConfig, login_url_for
from .exceptions import (
    AuthError,
    AuthErrorKind,
    ConfigError,
    MissingCredentialsError,
    TransportError,
)
from .token import Token

_logger = logging.getLogger(__name__)

TOKEN_PATH = "/services/oauth2/token"
REVOKE_PATH = "/services/oauth2/revoke"
AUTHORIZE_PATH = "/services/oauth2/authorize"

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
JWT_LIFETIME_SECONDS = 180


@runtime_checkable
class TokenProvider(Protocol):
    def request_token(self) -> Token: ...


class OAuthTokenProvider:
    """Shared token-endpoint plumbing for the concrete OAuth flows."""

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str] = None,
        *,
        environment: Union[Environment, str] = Environment.PRODUCTION,
        timeout: float = 30.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.environment = environment
        self.timeout = timeout

    @property
    def login_url(self) -> str:
        return login_url_for(self.environment)

    # --------------------------- Public methods -----------------------

    def request_token(self) -> Token:
        data = self._grant_data()
        _logger.debug(
            "Requesting %s token from %s", data.get("grant_type"), self.login_url
        )
        return Token.from_response(self._post(TOKEN_PATH, data))

    def is_refreshable(self, token: Token) -> bool:
        return bool(token.refresh_token)

    def refresh_token(self, token: Token) -> Token:
        """Mint a new access token from ``token.refresh_token``."""
        if not self.is_refreshable(token):
            raise AuthError(AuthErrorKind.INVALID_GRANT, "Token has no refresh token")
        data = {
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "refresh_token": token.refresh_token,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret
        fresh = Token.from_response(self._post(TOKEN_PATH, data))
        # Salesforce does not rotate refresh tokens unless configured to
        if not fresh.refresh_token:
            fresh = replace(fresh, refresh_token=token.refresh_token)
        return fresh

    def revoke_token(self, token: Token) -> None:
        """Invalidate the token (and its refresh token) on the server."""
        self._post(REVOKE_PATH, {"token": token.refresh_token or token.access_token})
        _logger.debug("Token revoked")

    # --------------------------- Internal helpers --------------------

    def _grant_data(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _post(self, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.login_url}{path}"
        try:
            resp = requests.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"POST {url} failed: {e}") from e

        if resp.status_code >= 400:
            raise self._auth_error(resp)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            raise AuthError(
                AuthErrorKind.UNKNOWN,
                f"Non-JSON response from {url}",
                status_code=resp.status_code,
                response=resp.text,
            ) from None

    @staticmethod
    def _auth_error(resp: requests.Response) -> AuthError:
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        kind = AuthErrorKind.parse(payload.get("error"))
        message = payload.get("error_description") or resp.text or f"HTTP {resp.status_code}"
        _logger.error("Token request failed (%s): %s %s", resp.status_code, kind.value, message)
        return AuthError(kind, message, status_code=resp.status_code, response=resp.text)


class UserPassTokenProvider(OAuthTokenProvider):
    """Resource-owner password flow (username + password + security token)."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        security_token: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(client_id, client_secret, **kwargs)
        self.username = username
        self.password = password
        self.security_token = security_token

    def _grant_data(self) -> Dict[str, Any]:
        return {
            "grant_type": "password",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "username": self.username,
            "password": f"{self.password}{self.security_token or ''}",
        }


class ClientCredentialsTokenProvider(OAuthTokenProvider):
    """OAuth2 client credentials flow (integration user bound to the app)."""

    def _grant_data(self) -> Dict[str, Any]:
        return {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }


class JwtBearerTokenProvider(OAuthTokenProvider):
    """JWT bearer flow: an RS256 assertion signed with the app's private key."""

    def __init__(
        self,
        client_id: str,
        username: str,
        private_key: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(client_id, None, **kwargs)
        self.username = username
        self.private_key = private_key

    @classmethod
    def from_key_file(cls, client_id: str, username: str, path: Union[str, Path], **kwargs: Any):
        return cls(client_id, username, Path(path).read_text(encoding="utf-8"), **kwargs)

    def build_assertion(self) -> str:
        claims = {
            "iss": self.client_id,
            "sub": self.username,
            "aud": self.login_url,
            "exp": int(time.time()) + JWT_LIFETIME_SECONDS,
        }
        return jwt.encode(claims, self.private_key, algorithm="RS256")

    def _grant_data(self) -> Dict[str, Any]:
        return {"grant_type": JWT_BEARER_GRANT, "assertion": self.build_assertion()}


# ---------------------------------------------------------------------------
# Authorization code (web server) flow
# ---------------------------------------------------------------------------


def generate_code_verifier() -> str:
    """Generate a 128-character URL-safe PKCE code verifier."""
    return secrets.token_urlsafe(96)


def code_challenge(verifier: str) -> str:
    """SHA256 hash of verifier, base64url-encoded (no padding)."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class AuthorizationCodeTokenProvider(OAuthTokenProvider):
    """Exchange a browser-issued authorization code for a token.

    The code is single use. Once exchanged, later calls to
    :meth:`request_token` use the refresh token from that exchange, if the
    connected app issued one.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str],
        redirect_uri: str,
        code: str,
        code_verifier: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(client_id, client_secret, **kwargs)
        self.redirect_uri = redirect_uri
        self.code: Optional[str] = code
        self.code_verifier = code_verifier
        self._refresh_token: Optional[str] = None

    def authorize_url(self, *, state: Optional[str] = None) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
        }
        if self.code_verifier:
            params["code_challenge"] = code_challenge(self.code_verifier)
            params["code_challenge_method"] = "S256"
        if state:
            params["state"] = state
        return f"{self.login_url}{AUTHORIZE_PATH}?{urlencode(params)}"

    def request_token(self) -> Token:
        if self.code is None:
            if not self._refresh_token:
                raise AuthError(
                    AuthErrorKind.INVALID_GRANT,
                    "Authorization code already used and no refresh token available",
                )
            fresh = self.refresh_token(
                Token(access_token="", instance_url="", refresh_token=self._refresh_token)
            )
            # connected apps may rotate the refresh token on every use
            self._refresh_token = fresh.refresh_token
            return fresh

        token = super().request_token()
        self.code = None
        self._refresh_token = token.refresh_token
        return token

    def _grant_data(self) -> Dict[str, Any]:
        data = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret
        if self.code_verifier:
            data["code_verifier"] = self.code_verifier
        return data


# ---------------------------------------------------------------------------
# Config wiring
# ---------------------------------------------------------------------------


def _require(settings: Dict[str, Optional[str]]) -> None:
    missing = [k for k, v in settings.items() if not v]
    if missing:
        raise MissingCredentialsError(missing)


def provider_from_config(cfg: SFConfig) -> OAuthTokenProvider:
    """Build the provider selected by ``cfg.auth_flow``."""
    common = {"environment": Environment.parse(cfg.login_url), "timeout": cfg.timeout}

    if cfg.auth_flow == "password":
        _require(
            {
                "SF_CLIENT_ID": cfg.client_id,
                "SF_CLIENT_SECRET": cfg.client_secret,
                "SF_USERNAME": cfg.username,
                "SF_PASSWORD": cfg.password,
            }
        )
        return UserPassTokenProvider(
            cfg.client_id,
            cfg.client_secret,
            cfg.username,
            cfg.password,
            cfg.security_token,
            **common,
        )

    if cfg.auth_flow == "client_credentials":
        _require({"SF_CLIENT_ID": cfg.client_id, "SF_CLIENT_SECRET": cfg.client_secret})
        return ClientCredentialsTokenProvider(cfg.client_id, cfg.client_secret, **common)

    if cfg.auth_flow == "jwt":
        _require(
            {
                "SF_CLIENT_ID": cfg.client_id,
                "SF_USERNAME": cfg.username,
                "SF_PRIVATE_KEY_FILE": cfg.private_key_file,
            }
        )
        return JwtBearerTokenProvider.from_key_file(
            cfg.client_id, cfg.username, cfg.private_key_file, **common
        )

    raise ConfigError(f"Unsupported SF_AUTH_FLOW: {cfg.auth_flow!r}")
