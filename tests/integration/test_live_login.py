"""Live checks against a real org.

Skipped unless SF_CLIENT_ID, SF_CLIENT_SECRET, SF_USERNAME and SF_PASSWORD
are set in the shell that runs pytest (the unit conftest hides SF_* vars,
so they are captured at import time here).
"""

import os

import pytest

from sfrest.client import SFRestClient
from sfrest.config import SFConfig
from sfrest.exceptions import AuthError, AuthErrorKind
from sfrest.providers import UserPassTokenProvider, provider_from_config

LIVE_ENV = {k: v for k, v in os.environ.items() if k.startswith("SF_")}
REQUIRED = ("SF_CLIENT_ID", "SF_CLIENT_SECRET", "SF_USERNAME", "SF_PASSWORD")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not all(LIVE_ENV.get(k) for k in REQUIRED),
        reason="live Salesforce credentials not configured",
    ),
]


@pytest.fixture
def live_cfg(monkeypatch):
    for k, v in LIVE_ENV.items():
        monkeypatch.setenv(k, v)
    cfg = SFConfig.from_env()
    cfg.auth_flow = "password"
    return cfg


def test_request_token(live_cfg):
    provider = provider_from_config(live_cfg)

    token = provider.request_token()

    assert token.access_token and token.instance_url and token.id
    assert token.issued_at and token.signature
    assert token.refresh_token is None
    assert not provider.is_refreshable(token)
    provider.revoke_token(token)


def test_wrong_client_id(live_cfg):
    provider = provider_from_config(live_cfg)
    provider.client_id = "wrong"

    with pytest.raises(AuthError) as exc_info:
        provider.request_token()

    assert exc_info.value.kind is AuthErrorKind.INVALID_CLIENT_ID


def test_wrong_password(live_cfg):
    provider = provider_from_config(live_cfg)
    assert isinstance(provider, UserPassTokenProvider)
    provider.password = "wrong"

    with pytest.raises(AuthError) as exc_info:
        provider.request_token()

    assert exc_info.value.kind is AuthErrorKind.INVALID_GRANT


def test_current_username_and_query(live_cfg):
    with SFRestClient.from_config(live_cfg) as sf:
        assert sf.get_current_username() == live_cfg.username
        page = sf.query("SELECT Id FROM User LIMIT 1")
        assert page.total_size >= 1
