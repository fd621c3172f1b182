import json
import os
from unittest.mock import MagicMock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from sfrest.client import SFRestClient
from sfrest.storage import InMemoryTokenStorage
from sfrest.token import Token
from sfrest.transport import Transport

INSTANCE_URL = "https://example.my.salesforce.com"


def make_response(status_code=200, json_data=None, *, text=None, headers=None, url=None):
    """Build a real requests.Response so .json()/.text/.content behave normally."""
    resp = requests.Response()
    resp.status_code = status_code
    if text is not None:
        resp._content = text.encode("utf-8")
    elif json_data is not None:
        resp._content = json.dumps(json_data).encode("utf-8")
    else:
        resp._content = b""
    resp.headers = CaseInsensitiveDict(headers or {"Content-Type": "application/json"})
    resp.url = url or INSTANCE_URL
    resp.encoding = "utf-8"
    return resp


def make_token(access_token="00DFAKE!TOKEN-1", **kwargs):
    kwargs.setdefault("instance_url", INSTANCE_URL)
    kwargs.setdefault("id", "https://login.salesforce.com/id/00Dxx0000001gEREAY/005xx000001Sv6tAAC")
    kwargs.setdefault("issued_at", "1700000000000")
    kwargs.setdefault("signature", "c2lnbmF0dXJl")
    return Token(access_token=access_token, **kwargs)


class CountingProvider:
    """TokenProvider double: hands out numbered tokens and counts calls."""

    def __init__(self, environment="https://login.salesforce.com"):
        self.calls = 0
        self.environment = environment
        self.revoked = []

    def request_token(self):
        self.calls += 1
        return make_token(f"00DFAKE!TOKEN-{self.calls}")

    def revoke_token(self, token):
        self.revoked.append(token)


@pytest.fixture
def provider():
    return CountingProvider()


@pytest.fixture
def storage():
    return InMemoryTokenStorage()


@pytest.fixture
def session():
    """MagicMock standing in for requests.Session; set .request.return_value/side_effect."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(provider, storage, session):
    sf = SFRestClient(provider, storage, transport=Transport(session=session))
    yield sf
    sf.close()


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """Keep real SF_* settings and the real token cache out of tests."""
    for name in list(os.environ):
        if name.startswith("SF_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SF_TOKEN_CACHE", str(tmp_path / "token.json"))
