"""Configuration helpers for HostConfigBackup."""

from __future__ import annotations

import csv
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from hostbackup.core.models import HostDescriptor


@dataclass(slots=True)
class ConfigPaths:
    """Paths used by the application."""

    hosts: Path
    settings: Path
    backups: Path


DEFAULT_CONFIG = ConfigPaths(
    hosts=Path("hosts.csv"),
    settings=Path("config/local.yml"),
    backups=Path("backups"),
)

HOST_FIELDS = ("name", "address", "username", "password", "method")


class HostsConfigError(ValueError):
    """Raised when the host list cannot be parsed or validated."""


class SettingsConfigError(ValueError):
    """Raised when local.yml contains invalid run settings."""


@dataclass(slots=True)
class RunSettings:
    """Tunables for connecting to hosts and collecting artifacts."""

    connect_timeout: float | None = 10.0
    command_timeout: float = 120.0
    poll_interval: float = 0.2
    keep_partial_capture: bool = False
    escalate_cleanup_failure: bool = False


def _row_to_host(row: Mapping[str, Any]) -> HostDescriptor:
    values: dict[str, str] = {}
    for field in HOST_FIELDS:
        value = row.get(field)
        values[field] = "" if value is None else str(value).strip()
    return HostDescriptor(**values)


def missing_fields(host: HostDescriptor) -> list[str]:
    """Return the names of required fields left empty on a non-comment host."""

    return [field for field in HOST_FIELDS if not getattr(host, field)]


def _read_csv_rows(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise HostsConfigError(f"{path}: host list is empty.")

        header = {name.strip().lower(): name for name in reader.fieldnames if name}
        missing = [field for field in HOST_FIELDS if field not in header]
        if missing:
            raise HostsConfigError(f"{path}: missing column(s): {', '.join(missing)}.")

        return [{field: raw.get(header[field]) for field in HOST_FIELDS} for raw in reader]


def _read_yaml_rows(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as handle:
        raw_data = yaml.safe_load(handle) or {}

    if not isinstance(raw_data, dict):
        raise HostsConfigError("Top-level host list structure must be a mapping.")

    raw_hosts = raw_data.get("hosts")
    if raw_hosts is None:
        raise HostsConfigError("Host list must contain a 'hosts' list.")
    if not isinstance(raw_hosts, list):
        raise HostsConfigError("The 'hosts' field must be a list of host entries.")

    rows: list[dict[str, Any]] = []
    for index, raw_host in enumerate(raw_hosts, start=1):
        if not isinstance(raw_host, dict):
            raise HostsConfigError(f"host #{index}: each host must be a mapping.")
        rows.append(raw_host)
    return rows


def load_hosts(path: Path, logger: logging.Logger | None = None) -> list[HostDescriptor]:
    """Load the host list from a CSV or YAML file, preserving input order.

    Every row becomes a host. Comment rows (name starting with ``#``) are
    skipped by the runner; rows with empty fields are kept so the runner
    reports them as failed hosts.
    """

    logger = logger or logging.getLogger(__name__)

    if not path.exists():
        raise FileNotFoundError(f"Host list not found: {path}")

    if path.suffix.lower() in (".yml", ".yaml"):
        rows = _read_yaml_rows(path)
    else:
        rows = _read_csv_rows(path)

    hosts: list[HostDescriptor] = []
    for index, row in enumerate(rows, start=1):
        host = _row_to_host(row)
        hosts.append(host)
        if host.is_comment:
            continue

        empty = missing_fields(host)
        if empty:
            logger.warning(
                "host #%d: empty field(s) %s, host will be reported as failed",
                index,
                ", ".join(empty),
                extra={"host": host.name or "-"},
            )
        else:
            logger.debug(
                "host=%s address=%s username=%s method=%s loaded",
                host.name,
                host.address,
                host.username,
                host.method,
                extra={"host": host.name},
            )

    return hosts


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SettingsConfigError(f"Section '{name}' must be a mapping.")
    return value


def _positive_number(value: Any, context: str, allow_none: bool = False) -> float | None:
    if value is None and allow_none:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsConfigError(f"{context} must be a number.")
    if value <= 0:
        raise SettingsConfigError(f"{context} must be greater than zero.")
    return float(value)


def _flag(value: Any, context: str) -> bool:
    if not isinstance(value, bool):
        raise SettingsConfigError(f"{context} must be true or false.")
    return value


def parse_settings(data: Mapping[str, Any] | None) -> RunSettings:
    """Build run settings from a parsed local.yml mapping."""

    settings = RunSettings()
    if not data:
        return settings

    ssh_section = _section(data, "ssh")
    if "connect_timeout" in ssh_section:
        settings.connect_timeout = _positive_number(
            ssh_section["connect_timeout"], "ssh.connect_timeout", allow_none=True
        )
    if "command_timeout" in ssh_section:
        settings.command_timeout = _positive_number(ssh_section["command_timeout"], "ssh.command_timeout")
    if "poll_interval" in ssh_section:
        settings.poll_interval = _positive_number(ssh_section["poll_interval"], "ssh.poll_interval")

    capture_section = _section(data, "capture")
    if "keep_partial" in capture_section:
        settings.keep_partial_capture = _flag(capture_section["keep_partial"], "capture.keep_partial")

    cleanup_section = _section(data, "cleanup")
    if "escalate_failure" in cleanup_section:
        settings.escalate_cleanup_failure = _flag(
            cleanup_section["escalate_failure"], "cleanup.escalate_failure"
        )

    return settings


def load_local_config(path: Path, logger: logging.Logger | None = None) -> Mapping[str, Any] | None:
    """Load local.yml if it exists and return the mapping."""

    logger = logger or logging.getLogger(__name__)
    if not path.exists():
        logger.debug("local config not found at %s", path)
        return None

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise SettingsConfigError(f"Unable to parse {path}: {exc}") from exc

    if not isinstance(data, Mapping):
        raise SettingsConfigError(f"Top-level structure of {path} must be a mapping.")
    return data


def describe_hosts(hosts: Iterable[HostDescriptor]) -> list[str]:
    """Return ``name (method)`` labels for the hosts that would be attempted."""

    return [f"{host.name} ({host.method})" for host in hosts if not host.is_comment]
