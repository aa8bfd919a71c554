"""Shared pytest fixtures for buildledger tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch

from buildledger.runtime import reset_paths, reset_settings


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: MonkeyPatch) -> Iterator[Path]:
    """Point paths and settings at a throwaway directory for every test."""
    monkeypatch.setenv("BUILDLEDGER_HOME", str(tmp_path))
    monkeypatch.delenv("BUILDLEDGER_ALERT_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("BUILDLEDGER_LOG_LEVEL", raising=False)
    reset_paths()
    reset_settings()
    yield tmp_path
    reset_paths()
    reset_settings()
