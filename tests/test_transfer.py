import logging
import sys
import unittest
from pathlib import Path

import paramiko

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
TESTS_DIR = Path(__file__).resolve().parent
for path in (SRC_DIR, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from fakes import FakeSession, FakeSftp
from hostbackup.core.errors import TransferFailed
from hostbackup.ssh.transfer import fetch_remote_file

REMOTE = "r1_binary-snapshot_20260101-0000.backup"


class FetchRemoteFileTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("transfer.test")
        self.log_extra = {"host": "r1"}

    def test_returns_exact_bytes(self) -> None:
        payload = b"\x00\x01binary\xffsnapshot" * 100
        sftp = FakeSftp(files={REMOTE: payload})

        content = fetch_remote_file(FakeSession(sftp=sftp), REMOTE, self.logger, self.log_extra)

        self.assertEqual(payload, content)
        self.assertEqual([REMOTE], sftp.opened)
        self.assertTrue(sftp.closed)

    def test_short_read_is_interrupted_transfer(self) -> None:
        sftp = FakeSftp(files={REMOTE: b"1234"}, sizes={REMOTE: 10})

        with self.assertRaises(TransferFailed) as ctx:
            fetch_remote_file(FakeSession(sftp=sftp), REMOTE, self.logger, self.log_extra)

        self.assertIn("4 of 10", str(ctx.exception))
        self.assertTrue(sftp.closed)

    def test_read_error_is_transfer_failed(self) -> None:
        sftp = FakeSftp(files={REMOTE: b"1234"}, read_error=paramiko.SSHException("EOF during read"))

        with self.assertRaises(TransferFailed):
            fetch_remote_file(FakeSession(sftp=sftp), REMOTE, self.logger, self.log_extra)

        self.assertTrue(sftp.closed)

    def test_missing_file(self) -> None:
        sftp = FakeSftp()

        with self.assertRaises(TransferFailed) as ctx:
            fetch_remote_file(FakeSession(sftp=sftp), REMOTE, self.logger, self.log_extra)

        self.assertIn("not found", str(ctx.exception))
        self.assertEqual([], sftp.opened)

    def test_empty_file(self) -> None:
        sftp = FakeSftp(files={REMOTE: b""})

        with self.assertRaises(TransferFailed):
            fetch_remote_file(FakeSession(sftp=sftp), REMOTE, self.logger, self.log_extra)

    def test_sftp_unavailable(self) -> None:
        session = FakeSession(sftp=paramiko.SSHException("subsystem request failed"))

        with self.assertRaises(TransferFailed):
            fetch_remote_file(session, REMOTE, self.logger, self.log_extra)


if __name__ == "__main__":
    unittest.main()
