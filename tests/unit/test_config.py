"""Tests for mirror settings."""

import pytest
from pydantic import ValidationError

from repomirror.config import MirrorSettings, get_settings


@pytest.fixture
def mirror_env(monkeypatch):
    """Minimal valid environment."""
    monkeypatch.setenv("MIRROR_GITHUB_TOKEN", "ghp_test")
    monkeypatch.setenv("MIRROR_OWNER", "acme")
    monkeypatch.setenv("MIRROR_REPO", "widgets")
    for name in ("MIRROR_CACHE_BACKEND", "MIRROR_DATABASE_URL", "MIRROR_EVENT_SINKS", "MIRROR_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestMirrorSettings:
    """Tests for MirrorSettings."""

    def test_defaults(self, mirror_env):
        settings = get_settings()

        assert settings.full_repository == "acme/widgets"
        assert settings.github_base_url == "https://api.github.com"
        assert settings.cache_backend == "memory"
        assert settings.event_sinks == ["logging", "metrics"]
        assert settings.webhook_secret is None
        assert settings.port == 8080

    def test_missing_token_fails(self, mirror_env):
        mirror_env.delenv("MIRROR_GITHUB_TOKEN")

        with pytest.raises(ValidationError):
            MirrorSettings()

    def test_blank_token_fails(self, mirror_env):
        mirror_env.setenv("MIRROR_GITHUB_TOKEN", "   ")

        with pytest.raises(ValidationError):
            MirrorSettings()

    def test_owner_with_slash_fails(self, mirror_env):
        mirror_env.setenv("MIRROR_OWNER", "acme/widgets")

        with pytest.raises(ValidationError):
            MirrorSettings()

    def test_values_are_normalized(self, mirror_env):
        mirror_env.setenv("MIRROR_LOG_LEVEL", "debug")
        mirror_env.setenv("MIRROR_EVENT_SINKS", '["LOGGING"]')
        mirror_env.setenv("MIRROR_CACHE_BACKEND", "Memory")

        settings = MirrorSettings()

        assert settings.log_level == "DEBUG"
        assert settings.event_sinks == ["logging"]
        assert settings.cache_backend == "memory"

    def test_unknown_sink_fails(self, mirror_env):
        mirror_env.setenv("MIRROR_EVENT_SINKS", '["kafka"]')

        with pytest.raises(ValidationError):
            MirrorSettings()

    def test_postgres_requires_database_url(self, mirror_env):
        mirror_env.setenv("MIRROR_CACHE_BACKEND", "postgres")

        with pytest.raises(ValidationError):
            MirrorSettings()

        mirror_env.setenv("MIRROR_DATABASE_URL", "mysql://nope")
        with pytest.raises(ValidationError):
            MirrorSettings()

        mirror_env.setenv("MIRROR_DATABASE_URL", "postgresql://mirror:pw@db:5432/mirror")
        assert MirrorSettings().cache_backend == "postgres"

    def test_hook_url_must_be_http(self, mirror_env):
        mirror_env.setenv("MIRROR_HOOK_URL", "ftp://mirror.example.com")

        with pytest.raises(ValidationError):
            MirrorSettings()

    @pytest.mark.parametrize("port", ["0", "70000"])
    def test_port_out_of_range_fails(self, mirror_env, port):
        mirror_env.setenv("MIRROR_PORT", port)

        with pytest.raises(ValidationError):
            MirrorSettings()
