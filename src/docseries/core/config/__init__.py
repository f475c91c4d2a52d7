"""Configuration for docseries.

Quick start::

    from docseries.core.config import get_settings

    settings = get_settings()
    settings.database_url      # "sqlite:///data/docseries.db"
    settings.code_format()     # CodeFormat(level_count=3, separator='-', ...)

Guardrails:
    ❌ Parsing ``DOCSERIES_*`` env vars ad-hoc in each module
    ✅ ``get_settings()`` from the cached singleton

Tags:
    docseries, configuration, settings, pydantic
"""

from docseries.core.config.settings import (
    DocSeriesSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "DocSeriesSettings",
    "clear_settings_cache",
    "get_settings",
]
