"""Tests for docseries.cli: command smoke tests via CliRunner.

Every test that touches the database passes ``--database`` with a fresh
SQLite file, so no settings or environment are needed.
"""

from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from docseries.cli.app import app

runner = CliRunner()


@pytest.fixture
def cli(db_url):
    """Invoke the CLI against an initialised temporary database."""

    def invoke(*args: str):
        return runner.invoke(app, [*args, "--database", db_url])

    result = invoke("db", "init")
    assert result.exit_code == 0, result.output
    return invoke


def _json(result) -> dict | list:
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# ─── Root ────────────────────────────────────────────────────────────────


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.stdout.startswith("docseries ")

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "allocate" in result.output

    def test_log_level_defaults_to_warning(self):
        assert runner.invoke(app, ["code", "format", "DFT", "-n", "1"]).exit_code == 0
        assert logging.getLogger().level == logging.WARNING

    def test_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("DOCSERIES_LOG_LEVEL", "INFO")
        assert runner.invoke(app, ["code", "format", "DFT", "-n", "1"]).exit_code == 0
        assert logging.getLogger().level == logging.INFO

    def test_verbose_overrides_log_level(self, monkeypatch):
        monkeypatch.setenv("DOCSERIES_LOG_LEVEL", "ERROR")
        assert runner.invoke(app, ["-v", "code", "format", "DFT", "-n", "1"]).exit_code == 0
        assert logging.getLogger().level == logging.DEBUG


# ─── Codes (no database) ─────────────────────────────────────────────────


class TestCodeCLI:
    def test_format(self):
        result = runner.invoke(app, ["code", "format", "DFT", "GOV", "REG", "-n", "7", "-t", "Minutes", "-e", "pdf"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "DFT-GOV-REG-007 Minutes.pdf"

    def test_format_follows_settings(self, monkeypatch):
        monkeypatch.setenv("DOCSERIES_SEPARATOR", "_")
        monkeypatch.setenv("DOCSERIES_PADDING_LENGTH", "5")
        result = runner.invoke(app, ["code", "format", "HR", "POL", "LEA", "-n", "42"])
        assert result.stdout.strip() == "HR_POL_LEA_00042"

    def test_parse_json(self):
        data = _json(runner.invoke(app, ["code", "parse", "DFT-GOV-REG-007 Minutes.pdf", "--json"]))
        assert data == {"levels": "DFT-GOV-REG", "number": 7, "free_text": "Minutes", "extension": "pdf"}

    def test_parse_malformed_exits_1(self):
        result = runner.invoke(app, ["code", "parse", "DFT-GOV-007"])
        assert result.exit_code == 1
        assert "MalformedCode" in result.output

    def test_too_many_levels_exits_2(self):
        result = runner.invoke(app, ["code", "format", "1", "2", "3", "4", "5", "6", "7", "-n", "1"])
        assert result.exit_code == 2


# ─── Allocation ──────────────────────────────────────────────────────────


class TestAllocateCLI:
    def test_allocate_and_peek(self, cli):
        first = _json(cli("allocate", "DFT", "GOV", "REG", "--scope", "1", "--json"))
        assert first["number"] == 1
        assert first["code"] == "DFT-GOV-REG-001"

        peeked = _json(cli("peek", "dft", "gov", "reg", "--scope", "1", "--json"))
        assert peeked["number"] == 2
        assert _json(cli("peek", "dft", "gov", "reg", "--scope", "1", "--json"))["number"] == 2

        assert _json(cli("allocate", "DFT", "GOV", "REG", "-s", "1", "--json"))["number"] == 2

    def test_allocate_table_output(self, cli):
        result = cli("allocate", "DFT", "GOV", "REG", "--scope", "1")
        assert result.exit_code == 0
        assert "DFT-GOV-REG-001" in result.stdout

    def test_uninitialised_database_exits_1(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'empty.db'}"
        result = runner.invoke(app, ["allocate", "DFT", "--scope", "1", "--database", url])
        assert result.exit_code == 1
        assert "StorageUnavailable" in result.output


# ─── Series ──────────────────────────────────────────────────────────────


class TestSeriesCLI:
    def test_upsert_and_list(self, cli):
        created = _json(cli("series", "upsert", "DFT", "GOV", "REG", "-s", "1", "--description", "Regs", "--next", "40", "--json"))
        assert created["next_number"] == 40
        assert created["description"] == "Regs"

        lowered = _json(cli("series", "upsert", "dft", "gov", "reg", "-s", "1", "--next", "5", "--json"))
        assert lowered["id"] == created["id"]
        assert lowered["next_number"] == 40
        assert lowered["description"] == "Regs"

        rows = _json(cli("series", "list", "-s", "1", "--json"))
        assert [r["key"] for r in rows] == ["DFT-GOV-REG"]

    def test_list_empty(self, cli):
        result = cli("series", "list", "-s", "3")
        assert result.exit_code == 0
        assert "No items." in result.stdout

    def test_delete(self, cli):
        series_id = _json(cli("series", "upsert", "A", "-s", "1", "--json"))["id"]
        result = cli("series", "delete", str(series_id), "-s", "1")
        assert result.exit_code == 0
        assert _json(cli("series", "list", "-s", "1", "--json")) == []

    def test_delete_in_use_exits_1(self, cli):
        cli("document", "create", "A", "-s", "1")
        series_id = _json(cli("series", "list", "-s", "1", "--json"))[0]["id"]
        result = cli("series", "delete", str(series_id), "-s", "1")
        assert result.exit_code == 1
        assert "SeriesInUse" in result.output

    def test_delete_missing_exits_1(self, cli):
        result = cli("series", "delete", "99", "-s", "1")
        assert result.exit_code == 1
        assert "SeriesNotFound" in result.output


# ─── Import ──────────────────────────────────────────────────────────────


class TestImportCLI:
    def test_files_from_directory(self, cli, tmp_path):
        folder = tmp_path / "legacy"
        folder.mkdir()
        for name in ("DFT-GOV-REG-005 Minutes.pdf", "DFT-GOV-REG-012.docx", "readme.txt"):
            (folder / name).write_text("", encoding="utf-8")

        data = _json(cli("import", "files", str(folder), "-s", "1", "--json"))
        assert data["valid"] == 2
        assert data["seeded"] == 1
        assert data["summaries"] == [{"key": "DFT-GOV-REG", "max_number": 12, "next_number": 13}]
        assert [e["name"] for e in data["invalid"]] == ["readme.txt"]

        assert _json(cli("allocate", "DFT", "GOV", "REG", "-s", "1", "--json"))["number"] == 13

    def test_files_dry_run(self, cli, tmp_path):
        listing = tmp_path / "names.txt"
        listing.write_text("a/DFT-GOV-REG-003.pdf\nHR-POL-LEA-009\n", encoding="utf-8")

        data = _json(cli("import", "files", str(listing), "--from-list", "--dry-run", "-s", "1", "--json"))
        assert data["valid"] == 2
        assert data["seeded"] == 0
        assert _json(cli("series", "list", "-s", "1", "--json")) == []

    def test_codes(self, cli, tmp_path):
        listing = tmp_path / "register.txt"
        listing.write_text(
            "# existing register\nDFT-GOV-REG-004 Budget.xlsx\nDFT-GOV-REG-004 Again.xlsx\n",
            encoding="utf-8",
        )
        data = _json(cli("import", "codes", str(listing), "-s", "1", "--by", "import", "--json"))
        assert data["valid"] == 1
        assert len(data["invalid"]) == 1

        docs = _json(cli("document", "list", "-s", "1", "--json"))
        assert docs == [{"id": docs[0]["id"], "number": 4, "file_name": "Budget.xlsx", "created_by": "import"}]


    def test_catalog(self, cli, tmp_path):
        catalog = tmp_path / "catalog.csv"
        catalog.write_text(
            "level,code,description\n"
            "1,DFT,Department for Transport\n"
            "2,GOV,Governance\n"
            "3,REG,\"Regulations, orders\"\n"
            "3,R@G,broken\n",
            encoding="utf-8",
        )
        data = _json(cli("import", "catalog", str(catalog), "-s", "1", "--header", "--json"))
        assert [e["key"] for e in data["entries"]] == ["DFT", "DFT-GOV", "DFT-GOV-REG"]
        assert data["seeded"] == 3
        assert data["invalid"] == [
            {"row": "3,R@G,broken", "reason": "Codes must be alphanumeric (A-Z, 0-9, _, -)"}
        ]

        series = _json(cli("series", "list", "-s", "1", "--json"))
        assert {s["description"] for s in series} == {
            "Department for Transport",
            "Governance",
            "Regulations, orders",
        }
        assert _json(cli("allocate", "DFT", "GOV", "REG", "-s", "1", "--json"))["number"] == 1


# ─── Documents ───────────────────────────────────────────────────────────


class TestDocumentCLI:
    def test_create_and_list(self, cli):
        created = _json(cli("document", "create", "DFT", "GOV", "REG", "-s", "1", "-t", "Minutes", "-e", "pdf", "--json"))
        assert created["number"] == 1
        assert created["file_name"] == "DFT-GOV-REG-001 Minutes.pdf"

        docs = _json(cli("document", "list", "-s", "1", "--json"))
        assert [d["file_name"] for d in docs] == ["DFT-GOV-REG-001 Minutes.pdf"]

    def test_purge(self, cli):
        cli("document", "create", "DFT", "-s", "1")
        result = cli("document", "purge", "-s", "1", "--yes")
        assert result.exit_code == 0
        assert "Removed 1 document(s)" in result.stdout
        assert _json(cli("document", "list", "-s", "1", "--json")) == []
