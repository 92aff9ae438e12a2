"""SSH session handling for backup strategies."""

from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass
from typing import Any, Sequence

import paramiko

from hostbackup.core.config import RunSettings
from hostbackup.core.errors import (
    BackupError,
    BackupTimeout,
    ConnectionFailed,
    RemoteExecutionFailed,
)
from hostbackup.core.models import HostDescriptor

DEFAULT_SSH_PORT = 22
RECV_BUFFER_SIZE = 65536
MAX_POLL_INTERVAL = 2.0
SHELL_WIDTH = 512


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Output and exit status of a one-shot remote command."""

    output: bytes
    error_output: bytes
    exit_status: int

    def error_text(self) -> str:
        text = self.error_output.decode("utf-8", errors="replace").strip()
        return text or f"exit_status={self.exit_status}"


@dataclass(frozen=True, slots=True)
class ShellCapture:
    """Bytes read from an interactive shell and the read error, if any."""

    output: bytes
    error: BackupError | None = None


def split_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into its parts; port defaults to 22."""

    address = address.strip()
    if not address:
        raise ValueError("address is empty")

    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"malformed address '{address}'")
        if not rest:
            return host, DEFAULT_SSH_PORT
        if not rest.startswith(":"):
            raise ValueError(f"malformed address '{address}'")
        port_text = rest[1:]
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        # bare hostname, IPv4 or unbracketed IPv6
        return address, DEFAULT_SSH_PORT

    if not host or not port_text.isdigit() or not 0 < int(port_text) <= 65535:
        raise ValueError(f"malformed address '{address}'")
    return host, int(port_text)


class HostSession:
    """Authenticated SSH connection owned by one host's backup."""

    def __init__(
        self,
        client: paramiko.SSHClient,
        settings: RunSettings,
        logger: logging.Logger,
        log_extra: dict[str, Any],
    ) -> None:
        self._client = client
        self.settings = settings
        self.logger = logger
        self.log_extra = log_extra

    def __enter__(self) -> HostSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()
        self.logger.debug("ssh session closed", extra=self.log_extra)

    def run_command(self, command: str) -> CommandResult:
        """Run ``command`` on a fresh exec channel and wait for it to finish.

        Completion is the channel reaching EOF followed by an exit status;
        neither may take longer than ``settings.command_timeout``.
        """

        timeout = self.settings.command_timeout
        self.logger.debug("executing command='%s'", command, extra=self.log_extra)
        try:
            stdin, stdout, stderr = self._client.exec_command(command, timeout=timeout)
            stdin.close()
            output = stdout.read()
            error_output = stderr.read()
            exit_status = self._wait_exit_status(stdout.channel, command)
        except socket.timeout as exc:
            raise BackupTimeout(f"command '{command}' produced no output for {timeout}s") from exc
        except (paramiko.SSHException, OSError) as exc:
            raise RemoteExecutionFailed(f"command '{command}' failed: {exc}") from exc

        self.logger.debug(
            "command finished status=%d bytes=%d", exit_status, len(output), extra=self.log_extra
        )
        return CommandResult(output=output, error_output=error_output, exit_status=exit_status)

    def _wait_exit_status(self, channel: paramiko.Channel, command: str) -> int:
        deadline = time.monotonic() + self.settings.command_timeout
        delay = self.settings.poll_interval
        while not channel.exit_status_ready():
            if time.monotonic() >= deadline:
                raise BackupTimeout(
                    f"command '{command}' did not finish within {self.settings.command_timeout}s"
                )
            time.sleep(delay)
            delay = min(delay * 2, MAX_POLL_INTERVAL)
        return channel.recv_exit_status()

    def capture_shell(self, commands: Sequence[str]) -> ShellCapture:
        """Feed ``commands`` to an interactive shell and collect its output.

        ``commands`` must end with the device's logout sequence. Input is left
        open until the device closes the channel itself. stderr is merged into
        stdout. Reading stops at channel EOF; a read failure or the deadline
        passing is returned in ``ShellCapture.error`` along with whatever
        output had already arrived.
        """

        try:
            channel = self._client.invoke_shell(width=SHELL_WIDTH)
        except (paramiko.SSHException, OSError) as exc:
            raise RemoteExecutionFailed(f"unable to open interactive shell: {exc}") from exc

        try:
            channel.set_combine_stderr(True)
            channel.settimeout(self.settings.poll_interval)
            for command in commands:
                self.logger.debug("sending shell command='%s'", command, extra=self.log_extra)
                channel.sendall(f"{command}\n".encode("utf-8"))
        except (paramiko.SSHException, OSError) as exc:
            channel.close()
            raise RemoteExecutionFailed(f"unable to send shell commands: {exc}") from exc

        chunks: list[bytes] = []
        error: BackupError | None = None
        try:
            self._read_until_eof(channel, chunks)
        except BackupTimeout as exc:
            error = exc
        except (paramiko.SSHException, OSError) as exc:
            error = RemoteExecutionFailed(f"shell read failed: {exc}")
            error.__cause__ = exc
        finally:
            channel.close()

        output = b"".join(chunks)
        if error is not None:
            self.logger.warning(
                "shell capture incomplete bytes=%d error=%s", len(output), error, extra=self.log_extra
            )
        else:
            self.logger.debug("shell capture finished bytes=%d", len(output), extra=self.log_extra)
        return ShellCapture(output=output, error=error)

    def _read_until_eof(self, channel: paramiko.Channel, chunks: list[bytes]) -> None:
        timeout = self.settings.command_timeout
        deadline = time.monotonic() + timeout
        while True:
            try:
                chunk = channel.recv(RECV_BUFFER_SIZE)
            except socket.timeout:
                chunk = None
            if chunk == b"":
                return
            if chunk:
                chunks.append(chunk)
            if time.monotonic() >= deadline:
                raise BackupTimeout(f"shell did not close within {timeout}s")

    def open_sftp(self) -> paramiko.SFTPClient:
        return self._client.open_sftp()


def open_session(
    host: HostDescriptor, settings: RunSettings, logger: logging.Logger
) -> HostSession:
    """Connect and authenticate to ``host`` with its username and password."""

    log_extra = {"host": host.name}
    try:
        hostname, port = split_address(host.address)
    except ValueError as exc:
        raise ConnectionFailed(f"invalid address: {exc}") from exc

    ssh = paramiko.SSHClient()
    ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    timeout = settings.connect_timeout
    try:
        logger.debug("opening ssh session host=%s port=%s", hostname, port, extra=log_extra)
        ssh.connect(
            hostname,
            port=port,
            username=host.username,
            password=host.password,
            look_for_keys=False,
            allow_agent=False,
            timeout=timeout,
            banner_timeout=timeout,
            auth_timeout=timeout,
        )
    except paramiko.AuthenticationException as exc:
        ssh.close()
        raise ConnectionFailed(f"authentication failed for {host.username}@{hostname}:{port}: {exc}") from exc
    except (paramiko.SSHException, OSError) as exc:
        ssh.close()
        raise ConnectionFailed(f"unable to connect to {hostname}:{port}: {exc}") from exc

    logger.info("ssh ok host=%s port=%s", hostname, port, extra=log_extra)
    return HostSession(ssh, settings, logger, log_extra)
