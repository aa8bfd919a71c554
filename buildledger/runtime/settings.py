"""Alert and notification settings loaded from TOML.

Example ``config/buildledger.toml``::

    [alerts]
    enabled = true
    threshold_percent = 20

    [projects."house-42".alerts]
    threshold_percent = 35

    [notifications]
    webhook_url = "https://hooks.example.com/low-stock"
    timeout_seconds = 10

``BUILDLEDGER_ALERT_WEBHOOK_URL`` overrides ``notifications.webhook_url``.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from buildledger.runtime.logging import get_logger
from buildledger.runtime.paths import get_paths

logger = get_logger(__name__)

DEFAULT_THRESHOLD_PERCENT = 20.0
DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class AlertSettings:
    """Low-stock alert configuration for one project."""

    enabled: bool = False
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold_percent <= 100.0:
            raise ValueError(f"threshold_percent must be between 0 and 100, got {self.threshold_percent}")


@dataclass(frozen=True)
class NotificationSettings:
    """Where alert payloads are delivered."""

    webhook_url: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class Settings:
    alerts: AlertSettings = field(default_factory=AlertSettings)
    project_alerts: dict[str, AlertSettings] = field(default_factory=dict)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    def alerts_for(self, project_id: str) -> AlertSettings:
        """Return the project override, falling back to the global defaults."""
        return self.project_alerts.get(project_id, self.alerts)


def _alert_settings(raw: dict[str, Any], base: AlertSettings) -> AlertSettings:
    return AlertSettings(
        enabled=bool(raw.get("enabled", base.enabled)),
        threshold_percent=float(raw.get("threshold_percent", base.threshold_percent)),
    )


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML. A missing file yields the defaults."""
    if config_path is None:
        config_path = get_paths().settings_file

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        logger.debug("Loaded settings from %s", config_path)
    else:
        logger.debug("Settings file not found, using defaults: %s", config_path)

    alerts = _alert_settings(data.get("alerts", {}), AlertSettings())

    project_alerts: dict[str, AlertSettings] = {}
    for project_id, project_data in data.get("projects", {}).items():
        project_alerts[str(project_id)] = _alert_settings(project_data.get("alerts", {}), alerts)

    raw_notifications = data.get("notifications", {})
    webhook_url = os.environ.get("BUILDLEDGER_ALERT_WEBHOOK_URL") or raw_notifications.get("webhook_url")
    notifications = NotificationSettings(
        webhook_url=webhook_url or None,
        timeout_seconds=float(raw_notifications.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
    )

    return Settings(alerts=alerts, project_alerts=project_alerts, notifications=notifications)


_settings: Settings | None = None


def get_settings(config_path: Path | None = None) -> Settings:
    """Get the global settings instance.

    The file is read on first call. Subsequent calls return the same
    instance (unless reset_settings() is called).
    """
    global _settings
    if _settings is None:
        _settings = load_settings(config_path)
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (for testing or after config edits)."""
    global _settings
    _settings = None
