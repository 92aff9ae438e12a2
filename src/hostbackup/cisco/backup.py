"""Backup helpers for Cisco IOS devices."""

from __future__ import annotations

import logging
from typing import Any

from hostbackup.common.capture import capture_backup
from hostbackup.core.config import RunSettings
from hostbackup.core.models import BackupArtifact
from hostbackup.ssh.client import HostSession

CAPTURE_COMMANDS = (
    "terminal length 0",
    "show running-config",
    "exit",
)


def backup_device(
    session: HostSession,
    filename: str,
    settings: RunSettings,
    logger: logging.Logger,
    log_extra: dict[str, Any],
) -> BackupArtifact:
    """Capture ``show running-config`` from an interactive shell."""

    logger.debug("executing command='show running-config'", extra=log_extra)
    return capture_backup(session, filename, CAPTURE_COMMANDS, settings, logger, log_extra)
