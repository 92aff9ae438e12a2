#!/usr/bin/env python3
"""Entry point for HostConfigBackup."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Mapping

# Ensure src/ is on sys.path for local imports when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from hostbackup.core.config import (  # noqa: E402
    DEFAULT_CONFIG,
    describe_hosts,
    load_hosts,
    load_local_config,
    parse_settings,
)
from hostbackup.core.logging import setup_logging  # noqa: E402
from hostbackup.core.runner import run_batch  # noqa: E402
from hostbackup.core.storage import resolve_backup_dir  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""

    parser = argparse.ArgumentParser(
        description=(
            "Backup utility for MikroTik, Cisco and HP device configurations. "
            "Hosts are processed one at a time; each failure is reported and the run continues."
        ),
    )
    parser.add_argument(
        "--hosts",
        type=Path,
        default=DEFAULT_CONFIG.hosts,
        help="Path to the host list (CSV with Name,Address,Username,Password,Method, or YAML)",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=DEFAULT_CONFIG.settings,
        help="Path to local.yml with timeouts, capture/cleanup policy and logging settings",
    )
    parser.add_argument(
        "--backup-dir",
        type=Path,
        default=None,
        help="Directory where backup files will be written. Overrides local.yml.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging for troubleshooting. Overrides local.yml logging.level.",
    )

    subcommands = parser.add_subparsers(dest="command", title="commands")
    backup_parser = subcommands.add_parser("backup", help="Run backups for every host in the host list")
    backup_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show which hosts would be backed up without connecting to them",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    cli_level = logging.DEBUG if args.debug else None

    try:
        local_config = load_local_config(args.settings)
        logger = setup_logging(local_config, cli_level=cli_level)
    except (OSError, ValueError) as exc:
        setup_logging(None, cli_level=cli_level).error("Failed to load %s: %s", args.settings, exc)
        return 1
    logger.info("HostConfigBackup run started.")

    if args.command is None:
        parser.print_help()
        logger.info("HostConfigBackup run finished.")
        return 0

    if args.command == "backup":
        exit_code = _run_backup(args, local_config, logger)
        logger.info("HostConfigBackup run finished.")
        return exit_code

    parser.error(f"Unknown command: {args.command}")
    return 2


def _run_backup(args: argparse.Namespace, local_config: Mapping[str, Any] | None, logger: logging.Logger) -> int:
    """Execute the backup workflow for all hosts in the host list."""

    try:
        settings = parse_settings(local_config)
        hosts = load_hosts(args.hosts, logger)
    except (OSError, ValueError):
        logger.exception("Failed to load configuration.")
        return 1

    active = [host for host in hosts if not host.is_comment]
    logger.debug("hosts loaded=%d active=%d", len(hosts), len(active))
    for method, count in sorted(Counter(host.method for host in active).items()):
        logger.debug("method=%s hosts=%d", method, count)

    if args.dry_run:
        logger.info("Dry run requested. Hosts to process: %s", describe_hosts(hosts))
        return 0

    backup_dir = resolve_backup_dir(args.backup_dir, local_config, logger)
    logger.info("Starting backup for %d host(s).", len(active))

    result = run_batch(hosts, backup_dir, settings, logger, report=lambda line: print(line, flush=True))

    logger.info("Backup finished succeeded=%d failed=%d", result.succeeded, result.failed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
