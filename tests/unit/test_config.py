"""Tests for sfrest.config."""

import os
from unittest.mock import patch

import pytest

from sfrest.config import DEFAULT_API_VERSION, Environment, SFConfig
from sfrest.exceptions import ConfigError


class TestSFConfig:
    def test_default_values(self):
        cfg = SFConfig()

        assert cfg.auth_flow == "password"
        assert cfg.login_url == "https://login.salesforce.com"
        assert cfg.client_id is None
        assert cfg.security_token == ""
        assert cfg.api_version == DEFAULT_API_VERSION

    def test_from_env(self):
        env = {
            "SF_AUTH_FLOW": "jwt",
            "SF_LOGIN_URL": "https://test.salesforce.com",
            "SF_CLIENT_ID": "test_client_id",
            "SF_CLIENT_SECRET": "test_secret",
            "SF_USERNAME": "user@example.com",
            "SF_PASSWORD": "pw",
            "SF_SECURITY_TOKEN": "tok",
            "SF_PRIVATE_KEY_FILE": "/keys/server.key",
            "SF_API_VERSION": "v58.0",
            "SF_TIMEOUT": "5",
            "SF_TOKEN_CACHE": "/tmp/cache.json",
        }

        with patch.dict(os.environ, env, clear=True):
            cfg = SFConfig.from_env()

        assert cfg.auth_flow == "jwt"
        assert cfg.login_url == "https://test.salesforce.com"
        assert cfg.client_secret == "test_secret"
        assert cfg.username == "user@example.com"
        assert cfg.security_token == "tok"
        assert cfg.private_key_file == "/keys/server.key"
        assert cfg.api_version == "v58.0"
        assert cfg.timeout == 5.0
        assert cfg.token_cache == "/tmp/cache.json"

    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = SFConfig.from_env()

        assert cfg == SFConfig()

    def test_from_env_sandbox_name(self):
        with patch.dict(os.environ, {"SF_LOGIN_URL": "sandbox"}, clear=True):
            cfg = SFConfig.from_env()

        assert cfg.login_url == "https://test.salesforce.com"

    def test_from_env_my_domain(self):
        env = {"SF_LOGIN_URL": "https://acme.my.salesforce.com/"}
        with patch.dict(os.environ, env, clear=True):
            cfg = SFConfig.from_env()

        assert cfg.login_url == "https://acme.my.salesforce.com"

    def test_from_env_bad_login_url(self):
        with patch.dict(os.environ, {"SF_LOGIN_URL": "staging"}, clear=True):
            with pytest.raises(ConfigError):
                SFConfig.from_env()

    def test_bad_timeout(self):
        with patch.dict(os.environ, {"SF_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ConfigError):
                SFConfig.from_env()


class TestEnvironment:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("production", Environment.PRODUCTION),
            ("SANDBOX", Environment.SANDBOX),
            ("https://test.salesforce.com/", Environment.SANDBOX),
        ],
    )
    def test_parse(self, value, expected):
        assert Environment.parse(value) is expected

    def test_parse_custom_domain(self):
        parsed = Environment.parse(" https://acme.my.salesforce.com/ ")

        assert parsed == "https://acme.my.salesforce.com"

    def test_parse_unknown(self):
        with pytest.raises(ConfigError):
            Environment.parse("staging")

    @pytest.mark.parametrize("value", ["http://login.salesforce.com", "https://", ""])
    def test_parse_rejects_non_https(self, value):
        with pytest.raises(ConfigError):
            Environment.parse(value)

    def test_login_url(self):
        assert Environment.SANDBOX.login_url == "https://test.salesforce.com"
