"""Tests for startup configuration validation."""

import pytest

from ltibridge.settings import DEFAULT_SESSION_SECRET, Settings

PROD = dict(
    env="prod",
    redis_url="redis://cache.internal:6379/0",
    session_secret="a-real-secret",
    csp_frame_ancestors="https://lms.example.com",
)


class TestSettings:
    def test_local_defaults(self, monkeypatch):
        for name in ("LTIB_ENV", "LTIB_TOOLS_URL", "LTIB_SESSION_COOKIE", "LTIB_DEBUG"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.env == "local"
        assert settings.tools_url == "/ltitools"
        assert settings.session_cookie == "JSESSIONID"
        assert settings.session_secret == DEFAULT_SESSION_SECRET
        assert settings.https_only is False

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("LTIB_TOOLS_URL", "/tools")
        monkeypatch.setenv("LTIB_DEBUG", "true")
        settings = Settings(_env_file=None)
        assert settings.tools_url == "/tools"
        assert settings.debug is True

    def test_valid_prod_config(self):
        settings = Settings(_env_file=None, **PROD)
        assert settings.https_only is True

    def test_relative_tools_url_rejected(self):
        with pytest.raises(ValueError, match="LTIB_TOOLS_URL"):
            Settings(_env_file=None, env="local", tools_url="ltitools")

    def test_non_positive_session_age_rejected(self):
        with pytest.raises(ValueError, match="LTIB_SESSION_MAX_AGE"):
            Settings(_env_file=None, env="local", session_max_age=0)

    def test_default_secret_rejected_when_deployed(self):
        with pytest.raises(ValueError, match="LTIB_SESSION_SECRET"):
            Settings(_env_file=None, **{**PROD, "env": "dev", "session_secret": DEFAULT_SESSION_SECRET})

    def test_localhost_redis_rejected_when_deployed(self):
        with pytest.raises(ValueError, match="LTIB_REDIS_URL"):
            Settings(_env_file=None, **{**PROD, "redis_url": "redis://localhost:6379/0"})

    def test_prod_requires_frame_ancestors_and_no_debug(self):
        """Every problem is reported at once."""
        with pytest.raises(ValueError) as exc_info:
            Settings(_env_file=None, **{**PROD, "csp_frame_ancestors": "*", "debug": True})
        message = str(exc_info.value)
        assert "LTIB_CSP_FRAME_ANCESTORS" in message
        assert "LTIB_DEBUG" in message
