"""Per-host backup execution and batch processing."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from hostbackup.cisco.backup import backup_device as backup_cisco
from hostbackup.core.config import RunSettings
from hostbackup.core.errors import (
    BackupError,
    ConnectionFailed,
    LocalIOFailed,
    RemoteExecutionFailed,
)
from hostbackup.core.models import BackupArtifact, BackupMethod, BatchResult, HostDescriptor, Outcome
from hostbackup.core.storage import make_backup_filename, write_artifact
from hostbackup.hp.backup import backup_device as backup_hp
from hostbackup.mikrotik.backup import export_backup, snapshot_backup
from hostbackup.ssh.client import HostSession, open_session, split_address

Strategy = Callable[[HostSession, str, RunSettings, logging.Logger, dict[str, Any]], BackupArtifact]
Connector = Callable[[HostDescriptor, RunSettings, logging.Logger], HostSession]

STRATEGIES: dict[BackupMethod, Strategy] = {
    BackupMethod.BINARY_SNAPSHOT: snapshot_backup,
    BackupMethod.EXPORT_AND_READ: export_backup,
    BackupMethod.CISCO_CAPTURE: backup_cisco,
    BackupMethod.HP_CAPTURE: backup_hp,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_host(host: HostDescriptor) -> None:
    """Reject host records that cannot be attempted, before any connection."""

    if not host.name or "/" in host.name:
        raise LocalIOFailed(f"name '{host.name}' cannot be used as a backup file name")
    try:
        split_address(host.address)
    except ValueError as exc:
        raise ConnectionFailed(f"invalid address: {exc}") from exc
    empty = [field for field in ("username", "password") if not getattr(host, field)]
    if empty:
        raise ConnectionFailed(f"missing {' and '.join(empty)}")


def backup_host(
    host: HostDescriptor,
    backup_dir: Path,
    settings: RunSettings,
    logger: logging.Logger,
    connect: Connector = open_session,
    now: datetime | None = None,
) -> Outcome:
    """Back up a single host; every failure is returned in the outcome."""

    log_extra = {"host": host.name}
    outcome = Outcome(host=host.name, method=host.method)

    try:
        method = BackupMethod.parse(host.method)
        check_host(host)
    except BackupError as exc:
        logger.error("%s", exc, extra=log_extra)
        outcome.error = exc
        return outcome

    filename = make_backup_filename(host.name, method.value, now or _utcnow())
    logger.debug(
        "preparing backup address=%s method=%s filename=%s", host.address, method.value, filename, extra=log_extra
    )

    try:
        with connect(host, settings, logger) as session:
            artifact = STRATEGIES[method](session, filename, settings, logger, log_extra)
        outcome.path = write_artifact(backup_dir, artifact, logger, log_extra)
    except BackupError as exc:
        logger.error("backup failed kind=%s error=%s", type(exc).__name__, exc, extra=log_extra)
        outcome.error = exc
        return outcome
    except Exception as exc:
        logger.exception("backup failed with unexpected error", extra=log_extra)
        outcome.error = exc
        return outcome

    outcome.warnings = artifact.warnings
    if artifact.warnings and method is BackupMethod.BINARY_SNAPSHOT and settings.escalate_cleanup_failure:
        outcome.error = RemoteExecutionFailed(
            f"saved {outcome.path} but {'; '.join(artifact.warnings)}"
        )
        logger.error("%s", outcome.error, extra=log_extra)
    return outcome


def run_batch(
    hosts: Iterable[HostDescriptor],
    backup_dir: Path,
    settings: RunSettings,
    logger: logging.Logger,
    report: Callable[[str], None] = print,
    connect: Connector = open_session,
    clock: Callable[[], datetime] = _utcnow,
) -> BatchResult:
    """Process hosts one at a time, in order, reporting a line per host.

    Comment records produce neither a session nor a report line.
    """

    result = BatchResult()
    for host in hosts:
        if host.is_comment:
            logger.debug("skipping comment record name=%s", host.name)
            continue

        logger.info("start backup method=%s", host.method, extra={"host": host.name})
        outcome = backup_host(host, backup_dir, settings, logger, connect=connect, now=clock())
        result.add(outcome)
        report(outcome.status_line())

    return result
