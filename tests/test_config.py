import logging
import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from hostbackup.core.config import (
    HostsConfigError,
    RunSettings,
    SettingsConfigError,
    describe_hosts,
    load_hosts,
    load_local_config,
    missing_fields,
    parse_settings,
)


class LoadHostsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("config.test")

    def _write(self, tmpdir: str, name: str, content: str) -> Path:
        path = Path(tmpdir) / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_csv_with_pascal_case_header_and_comments(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir,
                "hosts.csv",
                "Name,Address,Username,Password,Method\n"
                "r1,10.0.0.1:22,admin,secret1,binary-snapshot\n"
                "#old,10.0.0.9:22,admin,x,export-and-read\n"
                "sw1,10.0.0.2,admin,secret2,hp-capture\n",
            )

            hosts = load_hosts(path, self.logger)

        self.assertEqual(["r1", "#old", "sw1"], [host.name for host in hosts])
        self.assertTrue(hosts[1].is_comment)
        self.assertEqual("10.0.0.1:22", hosts[0].address)
        self.assertEqual("secret2", hosts[2].password)
        self.assertEqual(["r1 (binary-snapshot)", "sw1 (hp-capture)"], describe_hosts(hosts))

    def test_unknown_method_is_not_rejected_at_load_time(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir, "hosts.csv", "name,address,username,password,method\nr2,10.0.0.2,u,p,bogus\n"
            )

            hosts = load_hosts(path, self.logger)

        self.assertEqual("bogus", hosts[0].method)

    def test_rows_with_missing_fields_are_kept(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir,
                "hosts.csv",
                "Name,Address,Username,Password,Method\n"
                "r1,,admin,secret,export-and-read\n"
                "r2,10.0.0.2,admin,secret,export-and-read\n",
            )

            with self.assertLogs("config.test", level="WARNING") as logs:
                hosts = load_hosts(path, self.logger)

        self.assertEqual(["r1", "r2"], [host.name for host in hosts])
        self.assertEqual(["address"], missing_fields(hosts[0]))
        self.assertEqual([], missing_fields(hosts[1]))
        self.assertIn("address", logs.output[0])

    def test_comment_rows_may_be_short(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir, "hosts.csv", "Name,Address,Username,Password,Method\n# decommissioned\n"
            )

            hosts = load_hosts(path, self.logger)

        self.assertEqual(1, len(hosts))
        self.assertTrue(hosts[0].is_comment)

    def test_missing_column_raises(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "hosts.csv", "Name,Address,Username,Password\nr1,a,u,p\n")

            with self.assertRaises(HostsConfigError):
                load_hosts(path, self.logger)

    def test_missing_file_raises(self) -> None:
        with TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                load_hosts(Path(tmpdir) / "hosts.csv", self.logger)

    def test_yaml_host_list(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir,
                "hosts.yml",
                """hosts:
  - name: r1
    address: 192.0.2.1:2222
    username: admin
    password: secret
    method: export-and-read
  - name: "#spare"
""",
            )

            hosts = load_hosts(path, self.logger)

        self.assertEqual(["r1", "#spare"], [host.name for host in hosts])
        self.assertEqual("192.0.2.1:2222", hosts[0].address)

    def test_yaml_requires_hosts_list(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "hosts.yaml", "hosts: r1\n")

            with self.assertRaises(HostsConfigError):
                load_hosts(path, self.logger)


class SettingsTests(unittest.TestCase):
    def test_defaults_without_config(self) -> None:
        self.assertEqual(RunSettings(), parse_settings(None))

    def test_parses_all_sections(self) -> None:
        settings = parse_settings(
            {
                "ssh": {"connect_timeout": None, "command_timeout": 30, "poll_interval": 0.5},
                "capture": {"keep_partial": True},
                "cleanup": {"escalate_failure": True},
            }
        )

        self.assertIsNone(settings.connect_timeout)
        self.assertEqual(30.0, settings.command_timeout)
        self.assertEqual(0.5, settings.poll_interval)
        self.assertTrue(settings.keep_partial_capture)
        self.assertTrue(settings.escalate_cleanup_failure)

    def test_rejects_invalid_values(self) -> None:
        for data in (
            {"ssh": {"command_timeout": 0}},
            {"ssh": {"command_timeout": None}},
            {"ssh": {"poll_interval": "fast"}},
            {"capture": {"keep_partial": "yes"}},
            {"cleanup": []},
        ):
            with self.subTest(data=data):
                with self.assertRaises(SettingsConfigError):
                    parse_settings(data)

    def test_load_local_config(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "local.yml"
            self.assertIsNone(load_local_config(path))

            path.write_text("backup:\n  directory: /srv/backups\n", encoding="utf-8")
            self.assertEqual({"backup": {"directory": "/srv/backups"}}, dict(load_local_config(path)))

            path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(SettingsConfigError):
                load_local_config(path)


if __name__ == "__main__":
    unittest.main()
