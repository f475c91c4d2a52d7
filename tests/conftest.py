"""
Shared pytest fixtures and configuration for docseries tests.

This module provides:
- A temporary-file SQLite database with the schema created
- A ``DocSeries`` façade bound to that database
- Settings cache isolation

Usage:
    Fixtures are auto-discovered by pytest.

    def test_allocate(service, key):
        assert service.allocate(key).number == 1
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from docseries import DocSeries, HierarchicalKey
from docseries.core.config import clear_settings_cache
from docseries.core.uow import Database


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on the fixtures they use."""
    for item in items:
        fixtures = set(getattr(item, "fixturenames", ()))
        if fixtures & {"database", "service", "db_url"}:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop cached settings and any DOCSERIES_* variables from the host."""
    import os

    for name in list(os.environ):
        if name.startswith("DOCSERIES_"):
            monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite database file (shared by all threads of a test)."""
    return f"sqlite:///{tmp_path / 'docseries.db'}"


@pytest.fixture
def database(db_url: str) -> Iterator[Database]:
    db = Database.from_url(db_url, lock_timeout=5.0)
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture
def service(database: Database) -> Iterator[DocSeries]:
    yield DocSeries(database, lock_timeout=5.0)


@pytest.fixture
def key() -> HierarchicalKey:
    return HierarchicalKey.of(1, "DFT", "GOV", "REG")
