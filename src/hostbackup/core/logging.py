"""Logging setup for HostConfigBackup.

Settings come from the ``logging`` section of the mapping returned by
``hostbackup.core.config.load_local_config``::

    logging:
      directory: logs          # null disables the log file
      filename: hostbackup.log
      level: INFO

Records always carry a ``host`` attribute and credentials are masked before
they are formatted. Log output goes to stderr; stdout is left to the per-host
status lines.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from hostbackup.core.config import SettingsConfigError

DEFAULT_DIRECTORY = Path("logs")
DEFAULT_FILENAME = "hostbackup.log"

LOG_FORMAT = "%(asctime)s | %(levelname)s | host=%(host)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_CREDENTIAL_RE = re.compile(r"\b(password|secret|token)=\S+", re.IGNORECASE)


@dataclass(slots=True)
class LoggingConfig:
    directory: Path | None
    filename: str
    level: int

    @property
    def log_path(self) -> Path | None:
        return self.directory / self.filename if self.directory is not None else None


class HostContextFilter(logging.Filter):
    """Give records logged outside a host's processing a ``host`` of ``-``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "host", None):
            record.host = "-"
        return True


class CredentialMaskFilter(logging.Filter):
    """Replace ``password=...``-style values in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _CREDENTIAL_RE.sub(lambda match: f"{match.group(1)}=***", message)
        if masked != message:
            record.msg, record.args = masked, ()
        return True


def _parse_level(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        level = logging.getLevelName(value.strip().upper())
        if isinstance(level, int):
            return level
    raise SettingsConfigError(f"logging.level: unknown level '{value}'.")


def parse_logging_config(local_cfg: Mapping[str, Any] | None) -> LoggingConfig:
    """Read the ``logging`` section; a missing section yields the defaults."""

    section = (local_cfg or {}).get("logging") or {}
    if not isinstance(section, Mapping):
        raise SettingsConfigError("Section 'logging' must be a mapping.")

    if "directory" in section:
        raw_directory = section["directory"]
        directory = Path(str(raw_directory)).expanduser() if raw_directory else None
    else:
        directory = DEFAULT_DIRECTORY

    return LoggingConfig(
        directory=directory,
        filename=str(section.get("filename") or DEFAULT_FILENAME),
        level=_parse_level(section.get("level", "INFO")),
    )


def setup_logging(
    local_cfg: Mapping[str, Any] | None = None, cli_level: int | None = None
) -> logging.Logger:
    """Configure the root logger and return the application logger.

    ``cli_level`` (``--debug``) wins over ``logging.level``. When the log
    directory cannot be created, logging continues on stderr only.
    """

    config = parse_logging_config(local_cfg)
    level = cli_level if cli_level is not None else config.level

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None
    log_path = config.log_path
    if log_path is not None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
        except OSError as exc:
            file_error = exc

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(HostContextFilter())
        handler.addFilter(CredentialMaskFilter())
        root_logger.addHandler(handler)

    # paramiko logs banners and auth negotiation at INFO
    logging.getLogger("paramiko").setLevel(max(level, logging.WARNING))

    logger = logging.getLogger("hostbackup")
    logger.setLevel(level)
    if file_error is not None:
        logger.warning("Cannot write log file %s (%s). Logging to stderr only.", log_path, file_error)
    elif log_path is not None:
        logger.debug("Logging to %s", log_path)
    return logger
