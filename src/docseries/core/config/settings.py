"""
Centralized settings for docseries.

One validated, cached settings object covers the database connection, the
lock-wait bound of the allocator, the code format and logging.  Every field
can be set through a ``DOCSERIES_*`` environment variable or a ``.env``
file::

    DOCSERIES_DATABASE_URL=postgresql+psycopg://docs@db/docs
    DOCSERIES_LOCK_TIMEOUT_SECONDS=2.5
    DOCSERIES_LEVEL_COUNT=4

Tags:
    docseries, configuration, settings, pydantic, caching, validation
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docseries.core.codec import CodeFormat
from docseries.core.keys import MAX_LEVELS


class DocSeriesSettings(BaseSettings):
    """docseries configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DOCSERIES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/docseries.db")
    database_echo: bool = Field(default=False)
    database_pool_size: int = Field(default=5)

    # ── Allocation ───────────────────────────────────────────────
    lock_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Bound on waiting for a series lock"
    )

    # ── Code format ──────────────────────────────────────────────
    level_count: int = Field(default=3, description=f"Active taxonomy levels (1-{MAX_LEVELS})")
    separator: str = Field(default="-", min_length=1)
    padding_length: int = Field(default=3, ge=1)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="console")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def code_format(self) -> CodeFormat:
        """The :class:`CodeFormat` described by these settings."""
        return CodeFormat(
            level_count=self.level_count,
            separator=self.separator,
            padding_length=self.padding_length,
        )


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DocSeriesSettings] = {}


def get_settings(*, env_file: str | None = None, _force_reload: bool = False) -> DocSeriesSettings:
    """Load, validate, and cache a :class:`DocSeriesSettings` instance.

    Parameters
    ----------
    env_file:
        Explicit ``.env`` file to read instead of ``./.env``.
    _force_reload:
        Bypass cache and reload.
    """
    cache_key = env_file or ""
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file:
        settings = DocSeriesSettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = DocSeriesSettings()

    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "DocSeriesSettings",
    "get_settings",
    "clear_settings_cache",
]
