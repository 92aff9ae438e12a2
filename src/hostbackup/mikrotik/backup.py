"""Backup procedures for MikroTik RouterOS devices."""

from __future__ import annotations

import logging
from typing import Any

from hostbackup.core.config import RunSettings
from hostbackup.core.errors import BackupError, RemoteExecutionFailed
from hostbackup.core.models import BackupArtifact
from hostbackup.ssh.client import HostSession
from hostbackup.ssh.transfer import fetch_remote_file

SNAPSHOT_COMMAND = "/system/backup/save name={name} dont-encrypt=yes"
REMOVE_COMMAND = "/file/remove {name}"
EXPORT_COMMAND = "/export"


def cleanup_remote_snapshot(
    session: HostSession, filename: str, logger: logging.Logger, log_extra: dict[str, Any]
) -> str | None:
    """Remove the snapshot from the device; return a warning instead of raising."""

    command = REMOVE_COMMAND.format(name=filename)
    try:
        result = session.run_command(command)
    except BackupError as exc:
        warning = f"remote cleanup of {filename} failed: {exc}"
        logger.warning("%s", warning, extra=log_extra)
        return warning

    if result.exit_status != 0:
        warning = f"remote cleanup of {filename} failed: {result.error_text()}"
        logger.warning("%s", warning, extra=log_extra)
        return warning

    logger.info("remote file removed filename=%s", filename, extra=log_extra)
    return None


def snapshot_backup(
    session: HostSession,
    filename: str,
    settings: RunSettings,
    logger: logging.Logger,
    log_extra: dict[str, Any],
) -> BackupArtifact:
    """Save a binary system backup on the device, download it, then delete it."""

    command = SNAPSHOT_COMMAND.format(name=filename)
    logger.info("start system-backup filename=%s", filename, extra=log_extra)
    result = session.run_command(command)
    if result.exit_status != 0:
        logger.error(
            "system-backup command failed command=%s status=%s", command, result.exit_status, extra=log_extra
        )
        raise RemoteExecutionFailed(f"'{command}' failed: {result.error_text()}")

    content = fetch_remote_file(session, filename, logger, log_extra)

    warning = cleanup_remote_snapshot(session, filename, logger, log_extra)
    return BackupArtifact(
        filename=filename,
        content=content,
        provenance="transfer",
        warnings=(warning,) if warning else (),
    )


def export_backup(
    session: HostSession,
    filename: str,
    settings: RunSettings,
    logger: logging.Logger,
    log_extra: dict[str, Any],
) -> BackupArtifact:
    """Capture the text configuration printed by ``/export``."""

    result = session.run_command(EXPORT_COMMAND)
    if result.exit_status != 0:
        logger.warning(
            "export command failed command=%s status=%s", EXPORT_COMMAND, result.exit_status, extra=log_extra
        )
        raise RemoteExecutionFailed(f"'{EXPORT_COMMAND}' failed: {result.error_text()}")
    if not result.output.strip():
        raise RemoteExecutionFailed(f"'{EXPORT_COMMAND}' returned no output")

    logger.debug("export received bytes=%d", len(result.output), extra=log_extra)
    return BackupArtifact(filename=filename, content=result.output, provenance="capture")
