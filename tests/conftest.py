"""Shared fixtures for daybook tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from loguru import logger

from daybook.core.config import Settings
from daybook.core.time import FixedClock
from daybook.service import DaybookService, create_service
from daybook.storage.archive import ArchiveStore
from daybook.storage.working_set import WorkingSetStore

START_DAY = "2024-01-01"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep DAYBOOK_* variables and CLI log sinks from leaking between tests."""
    for name in list(os.environ):
        if name.startswith("DAYBOOK_"):
            monkeypatch.delenv(name, raising=False)

    yield

    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START_DAY)


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def archives(storage_root: Path) -> ArchiveStore:
    return ArchiveStore(storage_root, fsync=False)


@pytest.fixture
def working_set(storage_root: Path, archives: ArchiveStore, clock: FixedClock) -> WorkingSetStore:
    return WorkingSetStore(storage_root, archives=archives, clock=clock, fsync=False)


@pytest.fixture
def settings(storage_root: Path) -> Settings:
    return Settings(storage_path=storage_root, fsync=False, timezone="local")


@pytest.fixture
def service(settings: Settings, clock: FixedClock) -> DaybookService:
    with create_service(settings, clock=clock) as svc:
        yield svc
