from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .exceptions import ConfigError

DEFAULT_API_VERSION = "v60.0"
DEFAULT_TIMEOUT = 30.0


class Environment(Enum):
    """Salesforce login hosts."""

    PRODUCTION = "https://login.salesforce.com"
    SANDBOX = "https://test.salesforce.com"

    @property
    def login_url(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> Union[Environment, str]:
        """Accept ``production``/``sandbox`` (any case) or a login URL.

        The two standard login URLs map to their member. Any other
        ``https://`` URL (a My Domain login host) is returned as a string
        without the trailing slash.
        """
        key = value.strip()
        url = key.rstrip("/")
        for env in cls:
            if key.upper() == env.name or url == env.value:
                return env
        if url.lower().startswith("https://") and len(url) > len("https://"):
            return url
        raise ConfigError(f"Unknown Salesforce environment: {value!r}")


def login_url_for(environment: Union[Environment, str]) -> str:
    if isinstance(environment, Environment):
        return environment.login_url
    return environment.rstrip("/")


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass
class SFConfig:
    """Settings for building a client from the environment."""

    # password | client_credentials | jwt
    auth_flow: str = "password"

    # Base login URL (not the instance URL); may be a My Domain URL
    login_url: str = Environment.PRODUCTION.login_url

    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    username: Optional[str] = None
    password: Optional[str] = None
    security_token: str = ""

    # PEM file with the private key for the JWT bearer flow
    private_key_file: Optional[str] = None

    api_version: str = DEFAULT_API_VERSION
    timeout: float = DEFAULT_TIMEOUT

    # File cache used by the CLI; None means the default location
    token_cache: Optional[str] = None

    @classmethod
    def from_env(cls) -> SFConfig:
        """Load configuration from environment variables."""
        timeout = os.getenv("SF_TIMEOUT")
        try:
            timeout_value = float(timeout) if timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise ConfigError(f"SF_TIMEOUT must be a number, got {timeout!r}") from None

        return cls(
            auth_flow=os.getenv("SF_AUTH_FLOW", "password"),
            login_url=login_url_for(
                Environment.parse(os.getenv("SF_LOGIN_URL") or Environment.PRODUCTION.login_url)
            ),
            client_id=os.getenv("SF_CLIENT_ID"),
            client_secret=os.getenv("SF_CLIENT_SECRET"),
            username=os.getenv("SF_USERNAME"),
            password=os.getenv("SF_PASSWORD"),
            security_token=os.getenv("SF_SECURITY_TOKEN", ""),
            private_key_file=os.getenv("SF_PRIVATE_KEY_FILE"),
            api_version=os.getenv("SF_API_VERSION", DEFAULT_API_VERSION),
            timeout=timeout_value,
            token_cache=os.getenv("SF_TOKEN_CACHE"),
        )
