"""Runtime infrastructure for buildledger.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Alert/notification settings via get_settings()
- Alert sinks via create_alert_sink()

Usage:
    from buildledger.runtime import get_logger, get_paths

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.ledger_file)
"""

from buildledger.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from buildledger.runtime.paths import ProjectPaths, get_paths, reset_paths
from buildledger.runtime.settings import (
    AlertSettings,
    NotificationSettings,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from buildledger.runtime.notifications import (
    AlertSink,
    LoggingAlertSink,
    WebhookAlertSink,
    create_alert_sink,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Paths
    "get_paths",
    "reset_paths",
    "ProjectPaths",
    # Settings
    "AlertSettings",
    "NotificationSettings",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    # Notifications
    "AlertSink",
    "LoggingAlertSink",
    "WebhookAlertSink",
    "create_alert_sink",
]
