"""Tests for the daybook command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from daybook.cli import ExitCode, cli, exit_code_for
from daybook.core.config import ConfigError
from daybook.core.errors import (
    ArchiveExistsError,
    ArchiveNotFoundError,
    EntryNotFoundError,
    InvalidDateError,
    StorageError,
    ValidationError,
)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "daybook.yaml"
    path.write_text(yaml.safe_dump({"storage": {"path": str(tmp_path / "data"), "fsync": False}}))
    return path


@pytest.fixture
def run(config_path: Path):
    runner = CliRunner()

    def invoke(*args: str):
        result = runner.invoke(cli, ["--config", str(config_path), "--json", *args])
        payload = json.loads(result.output) if result.output.strip() else None
        return result, payload

    return invoke


def test_add_and_today(run):
    result, payload = run("add", "user-1", "apple", "--metric", "calories=95", "--attr", "meal=lunch")
    assert result.exit_code == 0
    assert payload["status"] == "success"
    assert payload["data"]["metrics"] == {"calories": 95}
    assert payload["data"]["attributes"] == {"meal": "lunch"}

    run("add", "user-1", "banana", "--metric", "calories=105")
    result, payload = run("today", "user-1")

    assert result.exit_code == 0
    assert payload["data"]["totals"] == {"calories": 200}
    assert len(payload["data"]["entries"]) == 2


def test_remove(run):
    _, added = run("add", "user-1", "apple", "--metric", "calories=95")

    result, payload = run("remove", "user-1", added["data"]["id"])
    assert result.exit_code == 0
    assert payload["data"]["removed"] == added["data"]["id"]

    result, payload = run("remove", "user-1", added["data"]["id"])
    assert result.exit_code == ExitCode.NOT_FOUND
    assert payload["status"] == "error"


def test_validation_error_exit_code(run):
    result, payload = run("add", "user-1", "apple", "--metric", "calories=-5")

    assert result.exit_code == ExitCode.VALIDATION_ERROR
    assert payload["meta"]["error_type"] == "ValidationError"
    assert payload["meta"]["errors"]


def test_reset_then_archive(run):
    run("add", "user-1", "apple", "--metric", "calories=95")
    run("add", "user-2", "steak", "--metric", "calories=600")

    result, payload = run("reset", "2999-01-01")
    assert result.exit_code == 0
    assert payload["data"]["reset"] is True
    assert payload["data"]["entry_count"] == 2

    _, listing = run("archive", "list")
    assert len(listing["data"]) == 1
    archived_day = listing["data"][0]

    result, payload = run("archive", "show", archived_day, "--owner", "user-1")
    assert result.exit_code == 0
    assert payload["data"]["totals"] == {"calories": 95}

    _, today = run("today", "user-1")
    assert today["data"]["date"] == "2999-01-01"
    assert today["data"]["entries"] == []


def test_archive_show_errors(run):
    result, _ = run("archive", "show", "2024-99-01")
    assert result.exit_code == ExitCode.VALIDATION_ERROR

    result, _ = run("archive", "show", "2001-01-01")
    assert result.exit_code == ExitCode.NOT_FOUND


def test_prune(run):
    result, payload = run("prune", "--max-age-days", "30")

    assert result.exit_code == 0
    assert payload["data"]["removed"] == []


def test_missing_config_file(tmp_path: Path):
    result = CliRunner().invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "--json", "today", "user-1"])

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert json.loads(result.output)["meta"]["error_type"] == "ConfigError"


def test_human_output(config_path: Path):
    runner = CliRunner()
    runner.invoke(cli, ["--config", str(config_path), "add", "user-1", "apple", "--metric", "calories=95"])

    result = runner.invoke(cli, ["--config", str(config_path), "today", "user-1"])

    assert result.exit_code == 0
    assert "apple" in result.output
    assert "count: 1" in result.output


def test_malformed_metric_is_usage_error():
    result = CliRunner().invoke(cli, ["add", "user-1", "apple", "--metric", "calories"])

    assert result.exit_code == 2


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (ValidationError("bad"), ExitCode.VALIDATION_ERROR),
        (InvalidDateError("bad date"), ExitCode.VALIDATION_ERROR),
        (ArchiveExistsError("2024-01-01"), ExitCode.CONFLICT),
        (EntryNotFoundError("user-1", "entry-x"), ExitCode.NOT_FOUND),
        (ArchiveNotFoundError("2024-01-01"), ExitCode.NOT_FOUND),
        (StorageError("disk"), ExitCode.STORAGE_ERROR),
        (ConfigError("config"), ExitCode.CONFIG_ERROR),
        (RuntimeError("boom"), ExitCode.UNKNOWN_ERROR),
    ],
)
def test_exit_code_mapping(exc, code):
    assert exit_code_for(exc) == code
