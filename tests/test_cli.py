from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import allure
import pytest
from click.testing import CliRunner

from wdrc import __version__
from wdrc.main import wdrc

pytestmark = [
    allure.epic("Operations"),
    allure.feature("CLI"),
]


class _StaticRevisionSource:
    def __init__(self, _fetcher: Any, *, api_url: str) -> None:
        self.api_url = api_url

    async def fetch_pair(
        self,
        title: str,
        old_revision: int,
        new_revision: int,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        return (
            {"labels": {"en": {"value": f"{title}@{old_revision}"}}},
            {"labels": {"en": {"value": f"{title}@{new_revision}"}}},
        )


@pytest.fixture()
def config_path(tmp_path: Path, feed_db, store_url: str, monkeypatch) -> Path:
    monkeypatch.setattr("wdrc.controllers.RevisionSource", _StaticRevisionSource)
    for name in ("WDRC_WIKIDATA_DB_URL", "WDRC_DB_URL", "WDRC_LOGGING"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "wikidata": {"url": feed_db.url},
                "wdrc": {"url": store_url},
                "max_recent_changes": 100,
                "error_backoff_seconds": 0,
                "logging": False,
            },
        ),
        encoding="utf-8",
    )
    return path


def test_run_executes_one_cycle(config_path: Path, feed_db) -> None:
    feed_db.add_change("Q1", "20240101000000", is_new=True, new_revision=1)
    feed_db.add_change("Q2", "20240101000100", old_revision=100, new_revision=101)
    runner = CliRunner()

    migrated = runner.invoke(wdrc, ["migrate", str(config_path)])
    assert migrated.exit_code == 0, migrated.output
    assert "Change store schema is up to date." in migrated.output

    result = runner.invoke(wdrc, ["run", str(config_path)])

    assert result.exit_code == 0, result.output
    assert (
        "Sync cycle completed: window=..99991231235900 rows=2 new=1 changed=1 "
        "changes=1 failed=0 label_rows=1 statement_rows=0 watermark=20240101000100"
    ) in result.output
    assert "timestamp_redirect: written=0 watermark=20000101000000" in result.output
    assert "timestamp_deletion: written=0 watermark=20000101000000" in result.output


def test_bot_runs_bounded_number_of_cycles(config_path: Path) -> None:
    runner = CliRunner()
    runner.invoke(wdrc, ["migrate", str(config_path)])

    result = runner.invoke(wdrc, ["bot", str(config_path), "--max-cycles", "2"])

    assert result.exit_code == 0, result.output
    assert "Sync loop stopped: completed_cycles=2" in result.output


def test_bot_counts_failed_cycles_without_stopping(config_path: Path) -> None:
    runner = CliRunner()

    # No schema: every cycle fails on the change store and is retried.
    result = runner.invoke(wdrc, ["bot", str(config_path), "--max-cycles", "2"])

    assert result.exit_code == 0, result.output
    assert "Sync loop stopped: completed_cycles=0" in result.output


def test_missing_config_is_reported(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(wdrc, ["run"])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(wdrc, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
