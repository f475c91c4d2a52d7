"""Tests for the Dialect abstraction layer."""

from __future__ import annotations

import pytest

from docseries.core.dialect import Dialect, PostgreSQLDialect, SQLiteDialect, get_dialect
from docseries.core.errors import InvalidConfig


@pytest.fixture(params=["sqlite", "postgresql"])
def dialect(request: pytest.FixtureRequest) -> Dialect:
    """Parametric fixture: run each test against every dialect."""
    return get_dialect(request.param)


class TestDialectContract:
    def test_satisfies_protocol(self, dialect):
        assert isinstance(dialect, Dialect)

    def test_placeholders_are_qmarks(self, dialect):
        assert dialect.placeholders(3) == "?, ?, ?"

    def test_insert_or_ignore_binds_every_column(self, dialect):
        sql = dialect.insert_or_ignore("code_series", ["scope", "normalized_key"])
        assert "code_series (scope, normalized_key)" in sql
        assert sql.count("?") == 2


class TestSQLiteDialect:
    def setup_method(self):
        self.d = SQLiteDialect()

    def test_name(self):
        assert self.d.name == "sqlite"

    def test_insert_or_ignore(self):
        assert self.d.insert_or_ignore("t", ["a", "b"]) == "INSERT OR IGNORE INTO t (a, b) VALUES (?, ?)"

    def test_no_row_lock_clause(self):
        assert self.d.for_update() == ""

    def test_lock_timeout_lives_on_the_connection(self):
        assert self.d.lock_timeout_sql(5000) is None

    def test_now(self):
        assert self.d.now() == "datetime('now')"


class TestPostgreSQLDialect:
    def setup_method(self):
        self.d = PostgreSQLDialect()

    def test_name(self):
        assert self.d.name == "postgresql"

    def test_insert_or_ignore(self):
        assert self.d.insert_or_ignore("t", ["a"]) == "INSERT INTO t (a) VALUES (?) ON CONFLICT DO NOTHING"

    def test_for_update(self):
        assert self.d.for_update() == " FOR UPDATE"

    def test_lock_timeout(self):
        assert self.d.lock_timeout_sql(2500) == "SET LOCAL lock_timeout = '2500ms'"

    def test_now(self):
        assert self.d.now() == "NOW()"


class TestGetDialect:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("sqlite:///data/docseries.db", SQLiteDialect),
            ("sqlite://", SQLiteDialect),
            ("postgresql://u@h/db", PostgreSQLDialect),
            ("postgresql+psycopg://u@h/db", PostgreSQLDialect),
            ("postgres://u@h/db", PostgreSQLDialect),
        ],
    )
    def test_from_url(self, url, expected):
        assert isinstance(get_dialect(url), expected)

    def test_unsupported_backend(self):
        with pytest.raises(InvalidConfig):
            get_dialect("mysql://u@h/db")
