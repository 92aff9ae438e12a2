"""Storage helpers for writing backups to disk."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from hostbackup.core.config import DEFAULT_CONFIG
from hostbackup.core.errors import LocalIOFailed
from hostbackup.core.models import BackupArtifact

BACKUP_SUFFIX = ".backup"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M"


def backup_timestamp(now: datetime | None = None) -> str:
    """Return a minute-granularity UTC timestamp; naive datetimes count as UTC."""

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def make_backup_filename(name: str, method: str, now: datetime | None = None) -> str:
    """Build ``<name>_<method>_<YYYYMMDD-HHMM>.backup``."""

    return f"{name}_{method}_{backup_timestamp(now)}{BACKUP_SUFFIX}"


def ensure_directory(path: Path) -> Path:
    """Ensure the target directory exists and return it."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise LocalIOFailed(f"unable to create backup directory {path}: {exc}") from exc
    return path


def write_artifact(
    backup_dir: Path,
    artifact: BackupArtifact,
    logger: logging.Logger,
    log_extra: Mapping[str, Any] | None = None,
) -> Path:
    """Write the artifact bytes to ``backup_dir`` as a single complete file.

    Content goes to a hidden temporary file first and is renamed into place,
    so a failed write never leaves a truncated backup behind.
    """

    log_extra = dict(log_extra or {})
    ensure_directory(backup_dir)

    target = backup_dir / artifact.filename
    partial = backup_dir / f".{artifact.filename}.part"
    try:
        with partial.open("wb") as handle:
            handle.write(artifact.content)
        partial.replace(target)
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise LocalIOFailed(f"unable to write {target}: {exc}") from exc

    logger.info("saved path=%s size=%d", target, artifact.size, extra=log_extra)
    return target


def _extract_local_backup_dir(local_cfg: Mapping[str, Any] | None) -> Path | None:
    """Return backup.directory from local.yml mapping when present."""

    if not isinstance(local_cfg, Mapping):
        return None

    backup_section = local_cfg.get("backup")
    if not isinstance(backup_section, Mapping):
        return None

    directory_value = backup_section.get("directory")
    if not directory_value:
        return None

    return Path(str(directory_value)).expanduser()


def resolve_backup_dir(
    cli_backup_dir: str | Path | None, local_cfg: Mapping[str, Any] | None, logger: logging.Logger
) -> Path:
    """Determine the backup directory with priority: CLI > local.yml > ``backups``.

    The directory is not created here; it is created on first write.
    """

    if cli_backup_dir:
        candidate = Path(cli_backup_dir).expanduser()
        logger.info("backup_dir source=cli path=%s", candidate)
        return candidate

    local_candidate = _extract_local_backup_dir(local_cfg)
    if local_candidate is not None:
        logger.info("backup_dir source=local_yml path=%s", local_candidate)
        return local_candidate

    logger.info("backup_dir source=default path=%s", DEFAULT_CONFIG.backups)
    return DEFAULT_CONFIG.backups
