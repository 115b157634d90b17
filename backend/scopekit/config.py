"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): single instance per process
    - cache_fallback_ttl_seconds is always positive

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for every setting: the library works with no environment at all
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ScopeKit settings from environment variables (prefix SCOPEKIT_)."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="SCOPEKIT_", case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./scopekit.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but the async engine needs asyncpg."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 10
    database_echo: bool = False

    # Cache policy
    cache_fallback_ttl_seconds: int = Field(300, gt=0)
    cache_namespace: str = Field("scopekit", min_length=1)
    cache_max_entries: int = Field(1024, gt=0)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
