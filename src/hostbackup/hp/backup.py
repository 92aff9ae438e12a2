"""Backup helpers for HP ProCurve switches."""

from __future__ import annotations

import logging
from typing import Any

from hostbackup.common.capture import capture_backup
from hostbackup.core.config import RunSettings
from hostbackup.core.models import BackupArtifact
from hostbackup.ssh.client import HostSession

# logout asks to confirm, then whether to save the configuration
CAPTURE_COMMANDS = (
    "no page",
    "show running-config",
    "logout",
    "y",
    "n",
)


def backup_device(
    session: HostSession,
    filename: str,
    settings: RunSettings,
    logger: logging.Logger,
    log_extra: dict[str, Any],
) -> BackupArtifact:
    return capture_backup(session, filename, CAPTURE_COMMANDS, settings, logger, log_extra)
