"""Tests for loguru configuration and timing instrumentation."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from daybook.observability import configure_loguru, get_logger, timing_context


def test_component_binding():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        get_logger("rollover").info("Rolled over", day="2024-01-01")
    finally:
        logger.remove(handler_id)

    assert records[0]["extra"]["component"] == "rollover"
    assert records[0]["extra"]["day"] == "2024-01-01"


def test_timing_context_logs_duration():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        with timing_context("prune", component="retention", cutoff="2024-01-01") as ctx:
            ctx["removed"] = 3
    finally:
        logger.remove(handler_id)

    end = [r for r in records if r["extra"].get("phase") == "end"][0]
    assert end["extra"]["component"] == "retention"
    assert end["extra"]["removed"] == 3
    assert end["extra"]["duration_ms"] >= 0


def test_jsonl_file_sink(tmp_path: Path):
    configure_loguru(log_dir=tmp_path, level="INFO", enable_console=False)
    get_logger("storage").info("Archived bucket", day="2024-01-01")
    logger.complete()
    logger.remove()

    lines = (tmp_path / "daybook.jsonl").read_text().splitlines()
    records = [json.loads(line)["record"] for line in lines]
    archived = [r for r in records if r["message"] == "Archived bucket"][0]
    assert archived["extra"]["component"] == "storage"
