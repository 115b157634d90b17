"""Settings: verifies env-driven configuration and validation."""

import pytest
from pydantic import ValidationError

from scopekit.config import Settings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("SCOPEKIT_DATABASE_URL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.database_url.startswith("sqlite+aiosqlite://")
    assert settings.cache_fallback_ttl_seconds == 300
    assert settings.cache_namespace == "scopekit"
    assert settings.log_format == "json"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SCOPEKIT_CACHE_FALLBACK_TTL_SECONDS", "45")
    monkeypatch.setenv("SCOPEKIT_LOG_FORMAT", "TEXT")
    settings = Settings(_env_file=None)
    assert settings.cache_fallback_ttl_seconds == 45
    assert settings.log_format == "text"


def test_postgres_url_is_rewritten_for_asyncpg():
    settings = Settings(_env_file=None, database_url="postgresql://u:p@db:5432/billing")
    assert settings.database_url == "postgresql+asyncpg://u:p@db:5432/billing"


def test_invalid_values_fail():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, cache_fallback_ttl_seconds=0)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_format="xml")


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
