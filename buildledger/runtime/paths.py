"""Centralized path management for buildledger.

This module provides a single source of truth for on-disk locations so the
CLI, the HTTP server and the ledger stores agree on where things live.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_project_root() -> Path:
    """Determine the working root: BUILDLEDGER_HOME or the current directory."""
    env_home = os.environ.get("BUILDLEDGER_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path.cwd()


@dataclass
class ProjectPaths:
    """Container for all buildledger paths.

    All paths are computed relative to the root, ensuring consistency
    across modules regardless of which entry point started the process.
    """

    root: Path = field(default_factory=_get_project_root)

    def __post_init__(self) -> None:
        self.root = self.root.resolve()

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def settings_file(self) -> Path:
        """Alerting/notification settings TOML file."""
        return self.config / "buildledger.toml"

    # --- Ledger paths ---
    @property
    def data(self) -> Path:
        """Directory holding the ledger document."""
        return self.root / "data"

    @property
    def ledger_file(self) -> Path:
        """JSON document holding the catalog, both ledgers and alert markers."""
        return self.data / "ledger.json"


_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance."""
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Forget the cached paths so the next get_paths() re-reads the environment."""
    global _paths
    _paths = None
