"""Interactive-shell capture shared by vendors without a file export."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from hostbackup.core.config import RunSettings
from hostbackup.core.errors import RemoteExecutionFailed
from hostbackup.core.models import BackupArtifact
from hostbackup.ssh.client import HostSession


def capture_backup(
    session: HostSession,
    filename: str,
    commands: Sequence[str],
    settings: RunSettings,
    logger: logging.Logger,
    log_extra: dict[str, Any],
) -> BackupArtifact:
    """Run ``commands`` in a shell and return the transcript as the artifact.

    When the read fails part-way, the partial transcript is kept only if
    ``settings.keep_partial_capture`` is set; it is then flagged as degraded.
    """

    capture = session.capture_shell(commands)

    if capture.error is not None:
        if not (settings.keep_partial_capture and capture.output):
            raise capture.error
        warning = f"partial output kept ({len(capture.output)} bytes): {capture.error}"
        logger.warning("%s", warning, extra=log_extra)
        return BackupArtifact(
            filename=filename,
            content=capture.output,
            provenance="capture",
            degraded=True,
            warnings=(warning,),
        )

    if not capture.output.strip():
        raise RemoteExecutionFailed("interactive shell produced no output")

    logger.debug("capture received bytes=%d", len(capture.output), extra=log_extra)
    return BackupArtifact(filename=filename, content=capture.output, provenance="capture")
