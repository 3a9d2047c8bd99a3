"""Tests for the lxcshare CLI.

Every command runs against the fake host root from conftest with the
root check disabled.
"""

from __future__ import annotations

import json
import stat
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from lxcshare.cli import main
from lxcshare.cli._common import AppContext
from lxcshare.fstab import HostMountTable
from lxcshare.models import ShareConfig


@pytest.fixture
def app(config: ShareConfig, system) -> AppContext:
    return AppContext(config=config, system=system, skip_root_check=True)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _host_add(runner: CliRunner, app: AppContext, *extra: str):
    return runner.invoke(main, [
        "host", "add",
        "--share", "//10.0.0.5/main",
        "--target", "/mnt/lxc_shares/main",
        "--username", "alice",
        "--password", "secret",
        *extra,
    ], obj=app)


class TestMain:
    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for name in ("status", "host", "bind", "export", "import", "configure"):
            assert name in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "lxcshare" in result.output

    def test_root_required(self, runner: CliRunner, config: ShareConfig, system) -> None:
        """Mutating commands refuse to run as a normal user."""
        app = AppContext(config=config, system=system)
        with patch("lxcshare.cli._common.os.geteuid", return_value=1000):
            result = _host_add(runner, app)
        assert result.exit_code == 1
        assert "root" in result.output
        assert HostMountTable(config).list_entries() == []


class TestStatus:
    def test_json(self, runner: CliRunner, app: AppContext, system) -> None:
        system.mounts = [("//nas/main", "/mnt/lxc_shares/main")]
        result = runner.invoke(main, ["status", "--json"], obj=app)
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["mounted"] == [{"source": "//nas/main", "target": "/mnt/lxc_shares/main"}]
        assert data["fstab"] == []

    def test_table(self, runner: CliRunner, app: AppContext) -> None:
        _host_add(runner, app)
        result = runner.invoke(main, ["status"], obj=app)
        assert result.exit_code == 0
        assert "CIFS entries in fstab" in result.output
        assert "Autofs CIFS maps configured by lxcshare" in result.output


class TestHostAdd:
    def test_static(self, runner: CliRunner, app: AppContext, config: ShareConfig) -> None:
        result = _host_add(runner, app)
        assert result.exit_code == 0, result.output
        assert "Setup complete" in result.output
        assert HostMountTable(config).has_entry_for_target("/mnt/lxc_shares/main")

    def test_prompts_for_credentials(self, runner: CliRunner, app: AppContext, config: ShareConfig) -> None:
        result = runner.invoke(main, [
            "host", "add", "--share", "//10.0.0.5/main", "--target", "/mnt/lxc_shares/main",
        ], input="alice\nsecret\n", obj=app)
        assert result.exit_code == 0, result.output
        creds = config.credentials_dir / ".cifs-credentials-main"
        assert creds.read_text() == "username=alice\npassword=secret\n"

    def test_autofs_fallback(self, runner: CliRunner, app: AppContext, config: ShareConfig, system) -> None:
        system.helper = False
        result = _host_add(runner, app, "--method", "autofs")
        assert result.exit_code == 0, result.output
        assert "fell back" in result.output
        assert HostMountTable(config).has_entry_for_target("/mnt/lxc_shares/main")

    def test_unsafe_target_name(self, runner: CliRunner, app: AppContext, config: ShareConfig) -> None:
        """A target basename that is not a safe file name is refused."""
        result = runner.invoke(main, [
            "host", "add",
            "--share", "//10.0.0.5/main",
            "--target", "/mnt/my share",
            "--username", "alice",
            "--password", "secret",
        ], obj=app)
        assert result.exit_code == 1
        assert "Invalid credential name" in result.output
        assert list(config.credentials_dir.iterdir()) == []


class TestBind:
    def test_add(self, runner: CliRunner, app: AppContext, lxc_config: Path) -> None:
        result = runner.invoke(main, [
            "bind", "add", "101",
            "--target", "/mnt/lxc_shares/main",
            "--subpath", "media",
            "--path", "/mnt/media",
            "--mode", "ro",
        ], obj=app)
        assert result.exit_code == 0, result.output
        assert lxc_config.read_text().splitlines()[-1] == (
            "mp1: /mnt/lxc_shares/main/media,mp=/mnt/media,ro=1"
        )

    def test_add_missing_config(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(main, [
            "bind", "add", "999", "--target", "/mnt/lxc_shares/main", "--path", "/mnt/media",
        ], obj=app)
        assert result.exit_code == 1
        assert "LXC config not found" in result.output

    def test_add_unreachable_container(self, runner: CliRunner, app: AppContext, system, lxc_config: Path) -> None:
        """The manual commands are printed on failure."""
        system.running = False
        system.startable = False
        result = runner.invoke(main, [
            "bind", "add", "101", "--target", "/mnt/lxc_shares/main", "--path", "/mnt/media",
        ], obj=app)
        assert result.exit_code == 1
        assert "pct start 101" in result.output

    def test_list(self, runner: CliRunner, app: AppContext, lxc_config: Path) -> None:
        result = runner.invoke(main, ["bind", "list", "101"], obj=app)
        assert result.exit_code == 0
        assert "mp0" in result.output
        assert "/data" in result.output

    def test_list_missing_config(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(main, ["bind", "list", "999"], obj=app)
        assert result.exit_code == 1


class TestTransfer:
    def test_export_stdout(self, runner: CliRunner, app: AppContext) -> None:
        _host_add(runner, app)
        result = runner.invoke(main, ["export"], obj=app)
        assert result.exit_code == 0
        assert "BEGIN_EXPORT" in result.output
        assert "host_mount=/mnt/lxc_shares/main" in result.output
        assert "cred_b64=" in result.output

    def test_export_file(self, runner: CliRunner, app: AppContext, tmp_path: Path) -> None:
        _host_add(runner, app)
        out = tmp_path / "mounts.export"
        result = runner.invoke(main, ["export", "-o", str(out)], obj=app)
        assert result.exit_code == 0
        assert out.read_text().startswith("BEGIN_EXPORT\n")
        assert stat.S_IMODE(out.stat().st_mode) == 0o600

    def test_import_stdin(self, runner: CliRunner, app: AppContext, config: ShareConfig) -> None:
        bundle = (
            "BEGIN_EXPORT\nBEGIN\nmethod=fstab\nnas_share=//nas/a\nhost_mount=/mnt/a\n"
            "cred_name=a\nhost_mode=ro\ncred_b64=dXNlcm5hbWU9dQpwYXNzd29yZD1wCg==\nEND\nEND_EXPORT\n"
        )
        result = runner.invoke(main, ["import"], input=bundle + "END_IMPORT\n", obj=app)
        assert result.exit_code == 0, result.output
        assert "Import completed." in result.output
        [entry] = HostMountTable(config).list_entries()
        assert entry.target == "/mnt/a"
        assert entry.access_mode.value == "ro"
        creds = config.credentials_dir / ".cifs-credentials-a"
        assert creds.read_text() == "username=u\npassword=p\n"

    def test_import_prompts_without_blob(self, runner: CliRunner, app: AppContext, config: ShareConfig, tmp_path: Path) -> None:
        bundle = tmp_path / "in.export"
        bundle.write_text("BEGIN\nnas_share=//nas/b\nhost_mount=/mnt/b\nEND\n")
        result = runner.invoke(main, ["import", "-i", str(bundle)], input="bob\npw\n", obj=app)
        assert result.exit_code == 0, result.output
        assert (config.credentials_dir / ".cifs-credentials-b").read_text() == "username=bob\npassword=pw\n"

    def test_export_file_replaces_permissive_file(self, runner: CliRunner, app: AppContext, tmp_path: Path) -> None:
        """An existing world-readable output file ends up owner-only."""
        _host_add(runner, app)
        out = tmp_path / "mounts.export"
        out.write_text("old")
        out.chmod(0o644)
        result = runner.invoke(main, ["export", "-o", str(out)], obj=app)
        assert result.exit_code == 0
        assert out.read_text().startswith("BEGIN_EXPORT\n")
        assert stat.S_IMODE(out.stat().st_mode) == 0o600

    def test_import_ignores_indented_end(self, runner: CliRunner, app: AppContext, config: ShareConfig) -> None:
        """Only a bare END_IMPORT line ends stdin input."""
        bundle = (
            " END_IMPORT\nBEGIN\nnas_share=//nas/a\nhost_mount=/mnt/a\n"
            "cred_b64=dXNlcm5hbWU9dQpwYXNzd29yZD1wCg==\nEND\nEND_IMPORT\n"
        )
        result = runner.invoke(main, ["import"], input=bundle, obj=app)
        assert result.exit_code == 0, result.output
        assert HostMountTable(config).has_entry_for_target("/mnt/a")

    def test_import_nothing(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(main, ["import"], input="garbage\nEND_IMPORT\n", obj=app)
        assert result.exit_code == 0
        assert "No complete blocks found." in result.output


class TestConfigure:
    def test_host_and_bind(self, runner: CliRunner, app: AppContext, config: ShareConfig, lxc_config: Path) -> None:
        """Full wizard run: new fstab mount plus a bind into container 101."""
        answers = "\n".join([
            "y",                        # create host mount
            "//10.0.0.5/main",
            "/mnt/lxc_shares/TNAS01",
            "alice",
            "secret",
            "1",                        # fstab
            "rw",
            "y",                        # add bind
            "101",
            "media",
            "/mnt/media",
            "ro",
        ]) + "\n"
        result = runner.invoke(main, ["configure"], input=answers, obj=app)
        assert result.exit_code == 0, result.output
        assert HostMountTable(config).has_entry_for_target("/mnt/lxc_shares/TNAS01")
        assert (config.credentials_dir / ".cifs-credentials-tnas01").is_file()
        assert lxc_config.read_text().splitlines()[-1] == (
            "mp1: /mnt/lxc_shares/TNAS01/media,mp=/mnt/media,ro=1"
        )

    def test_existing_mount_without_bind(self, runner: CliRunner, app: AppContext, config: ShareConfig) -> None:
        answers = "n\n/mnt/lxc_shares/main\nn\n"
        result = runner.invoke(main, ["configure"], input=answers, obj=app)
        assert result.exit_code == 0, result.output
        assert HostMountTable(config).list_entries() == []

    def test_no_target(self, runner: CliRunner, app: AppContext) -> None:
        """Skipping the host mount and giving no path fails."""
        result = runner.invoke(main, ["configure"], input="n\n\n", obj=app)
        assert result.exit_code == 1
        assert "Host mount path is required" in result.output
