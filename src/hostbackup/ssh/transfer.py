"""Pull remote files over the SFTP subsystem of an open session."""

from __future__ import annotations

import logging
from typing import Any

import paramiko

from hostbackup.core.errors import TransferFailed
from hostbackup.ssh.client import HostSession


def fetch_remote_file(
    session: HostSession, remote_name: str, logger: logging.Logger, log_extra: dict[str, Any]
) -> bytes:
    """Return the full content of ``remote_name``.

    The byte count must match the size reported by ``stat``; anything else is
    an interrupted transfer and raises ``TransferFailed``.
    """

    try:
        sftp = session.open_sftp()
    except (paramiko.SSHException, OSError) as exc:
        raise TransferFailed(f"unable to open SFTP session: {exc}") from exc

    try:
        try:
            expected_size = sftp.stat(remote_name).st_size
        except FileNotFoundError as exc:
            logger.error("remote file missing file=%s", remote_name, extra=log_extra)
            raise TransferFailed(f"remote file not found: {remote_name}") from exc

        if not expected_size:
            logger.error("remote file empty file=%s", remote_name, extra=log_extra)
            raise TransferFailed(f"remote file is empty: {remote_name}")

        logger.debug("downloading file=%s size=%d", remote_name, expected_size, extra=log_extra)
        with sftp.open(remote_name, "rb") as handle:
            handle.prefetch(expected_size)
            content = handle.read()
    except (paramiko.SSHException, OSError) as exc:
        logger.error('download failed file=%s reason="%s"', remote_name, exc, extra=log_extra)
        raise TransferFailed(f"unable to download {remote_name}: {exc}") from exc
    finally:
        sftp.close()

    if len(content) != expected_size:
        logger.error(
            "download incomplete file=%s expected=%d received=%d",
            remote_name,
            expected_size,
            len(content),
            extra=log_extra,
        )
        raise TransferFailed(
            f"transfer of {remote_name} interrupted: received {len(content)} of {expected_size} bytes"
        )

    logger.info("downloaded file=%s size=%d", remote_name, len(content), extra=log_extra)
    return content
