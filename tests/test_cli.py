"""
Tests for the CLI module.

Tests the command-line interface using Click's testing utilities. The server
client is replaced by a mock through the session manager's API factory.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from photosync.api.server_api import (
    AuthenticationRequiredError,
    LoginResponse,
    ServerAPIError,
    UploadResult,
)
from photosync.auth.identity import derive_device_uuid
from photosync.auth.session import SessionManager
from photosync.cli import DEFAULT_CONFIG_FILE, cli, get_config_dir
from photosync.cli.main import get_config_file
from photosync.media.asset import RemoteFile


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep CLI runs from configuring handlers or touching ~/.photosync."""
    with patch("photosync.cli.main.setup_logging"), patch(
        "photosync.cli.main.cleanup_old_logs"
    ):
        yield


@pytest.fixture
def api():
    mock_api = MagicMock()
    mock_api.login.return_value = LoginResponse(token="tok-123", user_id=7)
    mock_api.list_files.return_value = []
    mock_api.upload_file.side_effect = lambda path, filename, mime: UploadResult(filename)
    return mock_api


@pytest.fixture
def factory(api):
    return MagicMock(return_value=api)


@pytest.fixture
def runner(tmp_path, factory):
    """CliRunner whose session manager builds the mocked API."""

    def make_sessions(db):
        return SessionManager(db, api_factory=factory, device_name="test-host")

    with patch("photosync.cli.main.SessionManager", side_effect=make_sessions), patch(
        "photosync.cli.main.start_trace", return_value=tmp_path / "trace.log"
    ):
        yield CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    return tmp_path / "config"


@pytest.fixture
def media_dir(tmp_path):
    path = tmp_path / "media"
    path.mkdir()
    return path


def invoke(runner, config_dir, *args, **kwargs):
    return runner.invoke(cli, ["--config-dir", str(config_dir), *args], **kwargs)


def login(runner, config_dir):
    result = invoke(
        runner,
        config_dir,
        "login",
        "-e",
        "Alice@Example.com",
        "-p",
        "secret",
        "--host",
        "192.168.1.20",
    )
    assert result.exit_code == 0, result.output
    return result


class TestHelperFunctions:
    """Tests for CLI helper functions."""

    def test_default_config_file_in_home(self):
        """Test that the default config file lives under ~/.photosync."""
        assert DEFAULT_CONFIG_FILE == Path.home() / ".photosync" / "config.yaml"

    def test_get_config_dir_with_custom_path(self):
        """Test get_config_dir returns custom path when provided."""
        assert get_config_dir("/custom/path") == Path("/custom/path")

    def test_get_config_file_override(self, tmp_path):
        """Test an explicit config file wins over the config dir."""
        assert get_config_file(tmp_path, "/etc/ps.yaml") == Path("/etc/ps.yaml")
        assert get_config_file(tmp_path, None) == tmp_path / "config.yaml"


class TestCliGroup:
    """Tests for the main CLI group."""

    def test_cli_help(self):
        """Test that CLI shows help."""
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "PhotoSync client" in result.output

    def test_cli_version(self):
        """Test that CLI shows version."""
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "photosync" in result.output

    def test_invalid_config_only_warns(self, runner, config_dir):
        """Test a broken config file shows a warning but commands still run."""
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("server_type: [unclosed\n")

        result = invoke(runner, config_dir, "status")

        assert result.exit_code == 0
        assert "Configuration error" in result.output


class TestInitConfigCommand:
    """Tests for the init-config command."""

    def test_creates_file(self, runner, config_dir):
        result = invoke(runner, config_dir, "init-config")

        assert result.exit_code == 0
        assert (config_dir / "config.yaml").exists()
        assert "created successfully" in result.output

    def test_refuses_overwrite_without_force(self, runner, config_dir):
        invoke(runner, config_dir, "init-config")

        result = invoke(runner, config_dir, "init-config")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_force_overwrites(self, runner, config_dir):
        invoke(runner, config_dir, "init-config")

        result = invoke(runner, config_dir, "init-config", "--force")

        assert result.exit_code == 0


class TestLoginCommands:
    """Tests for login, register and logout."""

    def test_login_success(self, runner, config_dir, factory, api):
        result = login(runner, config_dir)

        expected_uuid = derive_device_uuid("alice@example.com", "secret")
        factory.assert_called_with("http://192.168.1.20:3000")
        api.login.assert_called_once_with(
            "alice@example.com", "secret", expected_uuid, "test-host"
        )
        assert "Logged in as alice@example.com" in result.output
        assert str(expected_uuid) in result.output

    def test_login_prompts_for_credentials(self, runner, config_dir):
        result = invoke(runner, config_dir, "login", input="bob@example.com\nhunter2\n")

        assert result.exit_code == 0, result.output
        assert "Logged in as bob@example.com" in result.output

    def test_login_rejected(self, runner, config_dir, api):
        api.login.side_effect = AuthenticationRequiredError("Invalid credentials", 401)

        result = invoke(runner, config_dir, "login", "-e", "a@b.com", "-p", "bad")

        assert result.exit_code == 1
        assert "Login rejected" in result.output

    def test_login_server_unreachable(self, runner, config_dir, api):
        api.login.side_effect = ServerAPIError("connection refused")

        result = invoke(runner, config_dir, "login", "-e", "a@b.com", "-p", "pw")

        assert result.exit_code == 1
        assert "Login failed" in result.output

    def test_register_password_mismatch(self, runner, config_dir, api):
        result = invoke(
            runner,
            config_dir,
            "register",
            "-e",
            "a@b.com",
            "-p",
            "one",
            "--confirm-password",
            "two",
        )

        assert result.exit_code == 1
        assert "Passwords do not match" in result.output
        api.register.assert_not_called()

    def test_register_success(self, runner, config_dir, api):
        result = invoke(
            runner,
            config_dir,
            "register",
            "-e",
            "a@b.com",
            "-p",
            "pw",
            "--confirm-password",
            "pw",
        )

        assert result.exit_code == 0, result.output
        assert "Account created." in result.output
        api.register.assert_called_once()

    def test_logout(self, runner, config_dir):
        login(runner, config_dir)

        result = invoke(runner, config_dir, "logout")
        status = invoke(runner, config_dir, "status")

        assert result.exit_code == 0
        assert "Logged out." in result.output
        assert "Not logged in" in status.output


class TestStatusCommand:
    """Tests for the status and device-id commands."""

    def test_status_not_logged_in(self, runner, config_dir):
        result = invoke(runner, config_dir, "status")

        assert result.exit_code == 0
        assert "=== PhotoSync Status ===" in result.output
        assert "Not logged in" in result.output

    def test_status_logged_in(self, runner, config_dir):
        login(runner, config_dir)

        result = invoke(runner, config_dir, "status")

        assert "Logged in" in result.output
        assert "alice@example.com" in result.output
        assert "http://192.168.1.20:3000" in result.output

    def test_device_id_from_stored_identity(self, runner, config_dir):
        login(runner, config_dir)

        result = invoke(runner, config_dir, "device-id")

        assert result.exit_code == 0
        assert result.output.strip() == str(
            derive_device_uuid("alice@example.com", "secret")
        )

    def test_device_id_from_credentials(self, runner, config_dir):
        result = invoke(
            runner, config_dir, "device-id", "-e", "Bob@Example.com", "-p", "pw"
        )

        assert result.exit_code == 0
        assert result.output.strip() == str(derive_device_uuid("bob@example.com", "pw"))

    def test_device_id_nobody_logged_in(self, runner, config_dir):
        result = invoke(runner, config_dir, "device-id")

        assert result.exit_code == 1
        assert "nobody is logged in" in result.output


class TestPassCommands:
    """Tests for backup, restore and clean-duplicates."""

    def test_backup_requires_login(self, runner, config_dir, media_dir):
        result = invoke(runner, config_dir, "backup", "-m", str(media_dir))

        assert result.exit_code == 1
        assert "Not logged in" in result.output

    def test_backup_uploads(self, runner, config_dir, media_dir, api):
        (media_dir / "a.jpg").write_bytes(b"a")
        login(runner, config_dir)

        result = invoke(runner, config_dir, "backup", "-m", str(media_dir))

        assert result.exit_code == 0, result.output
        api.upload_file.assert_called_once_with(media_dir / "a.jpg", "a.jpg", "image/jpeg")
        assert "Uploaded: 1" in result.output

    def test_backup_dry_run(self, runner, config_dir, media_dir, api):
        (media_dir / "a.jpg").write_bytes(b"a")
        login(runner, config_dir)

        result = invoke(runner, config_dir, "backup", "--dry-run", "-m", str(media_dir))

        assert result.exit_code == 0, result.output
        api.upload_file.assert_not_called()
        assert "a.jpg" in result.output

    def test_backup_with_failures_exits_nonzero(self, runner, config_dir, media_dir, api):
        (media_dir / "a.jpg").write_bytes(b"a")
        api.upload_file.side_effect = ServerAPIError("boom")
        login(runner, config_dir)

        result = invoke(runner, config_dir, "backup", "-m", str(media_dir))

        assert result.exit_code == 1
        assert "Failed: 1" in result.output

    def test_backup_listing_failure(self, runner, config_dir, media_dir, api):
        api.list_files.side_effect = ServerAPIError("unreachable")
        login(runner, config_dir)

        result = invoke(runner, config_dir, "backup", "-m", str(media_dir))

        assert result.exit_code == 1
        assert "Backup failed" in result.output

    def test_restore_downloads(self, runner, config_dir, media_dir, api):
        api.list_files.return_value = [RemoteFile("new.jpg")]
        api.download_file.side_effect = lambda name, dest: dest.write_bytes(b"x")
        login(runner, config_dir)

        result = invoke(runner, config_dir, "restore", "-m", str(media_dir))

        assert result.exit_code == 0, result.output
        assert (media_dir / "PhotoSync" / "new.jpg").exists()

    def test_clean_duplicates_cancelled(self, runner, config_dir, media_dir):
        (media_dir / "a.jpg").write_bytes(b"same")
        (media_dir / "b.jpg").write_bytes(b"same")
        login(runner, config_dir)

        result = invoke(
            runner, config_dir, "clean-duplicates", "-m", str(media_dir), input="n\n"
        )

        assert result.exit_code == 0, result.output
        assert "Cancelled" in result.output
        assert (media_dir / "a.jpg").exists()
        assert (media_dir / "b.jpg").exists()

    def test_clean_duplicates_yes(self, runner, config_dir, media_dir):
        (media_dir / "a.jpg").write_bytes(b"same")
        (media_dir / "b.jpg").write_bytes(b"same")
        login(runner, config_dir)

        result = invoke(runner, config_dir, "clean-duplicates", "--yes", "-m", str(media_dir))

        assert result.exit_code == 0, result.output
        assert "Deleted: 1" in result.output
        remaining = [p.name for p in media_dir.iterdir() if p.is_file()]
        assert len(remaining) == 1
