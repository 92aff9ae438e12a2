"""Error taxonomy for per-host backup failures."""

from __future__ import annotations


class BackupError(RuntimeError):
    """Base exception for anything that fails a single host's backup."""


class ConnectionFailed(BackupError):
    """Raised when the TCP connect, SSH handshake or authentication fails."""


class RemoteExecutionFailed(BackupError):
    """Raised when a remote command channel cannot be opened, run or read."""


class TransferFailed(BackupError):
    """Raised when pulling a remote file fails at any stage."""


class UnknownMethod(BackupError):
    """Raised when a host record names a backup method with no strategy."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"unknown backup method '{tag}'")
        self.tag = tag


class LocalIOFailed(BackupError):
    """Raised when the backup directory or file cannot be written."""


class BackupTimeout(BackupError):
    """Raised when a remote command does not complete before the deadline."""
