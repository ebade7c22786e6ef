import logging
import subprocess
from unittest.mock import MagicMock

import pytest

from common.command_utils import (
    check_package_installed,
    command_exists,
    get_symbols,
    log_server_boot,
    run_command,
    run_diagnostic_command,
    run_elevated_command,
)
from provision.config_models import SYMBOLS_DEFAULT, AppSettings


@pytest.fixture
def mock_app_settings():
    """Fixture to create mock AppSettings for testing."""
    mock_settings = MagicMock(spec=AppSettings)
    mock_settings.symbols = {"error": "❌", "info": "ℹ️", "warning": "!", "gear": "⚙️"}
    return mock_settings


def test_get_symbols_defaults_without_settings():
    assert get_symbols(None) == SYMBOLS_DEFAULT


def test_get_symbols_from_settings(mock_app_settings):
    assert get_symbols(mock_app_settings)["warning"] == "!"


@pytest.mark.parametrize(
    "level,method",
    [
        ("info", "info"),
        ("success", "info"),
        ("warning", "warning"),
        ("error", "error"),
        ("critical", "critical"),
        ("debug", "debug"),
    ],
)
def test_log_server_boot_levels(mock_logger, level, method):
    log_server_boot("hello", level, mock_logger)
    getattr(mock_logger, method).assert_called_once_with("hello", exc_info=False)


def test_run_command_success_logs_output(mocker, mock_logger, mock_app_settings):
    mock_run = mocker.patch(
        "common.command_utils.subprocess.run",
        return_value=subprocess.CompletedProcess(["echo", "hi"], 0, stdout="hi\n", stderr=""),
    )

    result = run_command(
        ["echo", "hi"], mock_app_settings, capture_output=True, current_logger=mock_logger
    )

    assert result.stdout == "hi\n"
    mock_run.assert_called_once_with(
        ["echo", "hi"],
        check=True,
        capture_output=True,
        text=True,
        input=None,
    )
    mock_logger.info.assert_any_call("⚙️ Executing: echo hi", exc_info=False)
    mock_logger.info.assert_any_call("   stdout: hi", exc_info=False)


def test_run_command_failure_is_logged_and_reraised(mocker, mock_logger, mock_app_settings):
    mocker.patch(
        "common.command_utils.subprocess.run",
        side_effect=subprocess.CalledProcessError(2, ["false"], output="", stderr="boom"),
    )

    with pytest.raises(subprocess.CalledProcessError):
        run_command(["false"], mock_app_settings, current_logger=mock_logger)

    mock_logger.error.assert_any_call("❌ Command `false` failed (rc 2).", exc_info=False)
    mock_logger.error.assert_any_call("   stderr: boom", exc_info=False)


def test_run_command_missing_binary_reraises(mocker, mock_logger, mock_app_settings):
    error = FileNotFoundError(2, "No such file", "nosuchcmd")
    mocker.patch("common.command_utils.subprocess.run", side_effect=error)

    with pytest.raises(FileNotFoundError):
        run_command(["nosuchcmd"], mock_app_settings, current_logger=mock_logger)


def test_run_elevated_command_adds_sudo_when_not_root(mocker, mock_logger, mock_app_settings):
    mocker.patch("common.command_utils.os.geteuid", return_value=1000)
    mock_run_command = mocker.patch("common.command_utils.run_command")

    run_elevated_command(["apt-get", "update"], mock_app_settings, current_logger=mock_logger)

    mock_run_command.assert_called_once_with(
        ["sudo", "apt-get", "update"],
        mock_app_settings,
        check=True,
        capture_output=False,
        cmd_input=None,
        current_logger=mock_logger,
    )


def test_run_elevated_command_as_root_runs_directly(mocker, mock_app_settings):
    mocker.patch("common.command_utils.os.geteuid", return_value=0)
    mock_run_command = mocker.patch("common.command_utils.run_command")

    run_elevated_command(["id"], mock_app_settings)

    assert mock_run_command.call_args.args[0] == ["id"]


def test_run_diagnostic_command_never_raises(mocker, mock_logger, mock_app_settings):
    mocker.patch("common.command_utils.run_command", side_effect=FileNotFoundError("df"))

    assert run_diagnostic_command(["df", "-h"], mock_app_settings, mock_logger) is None
    mock_logger.warning.assert_called_once()


def test_run_diagnostic_command_returns_stdout(mocker, mock_app_settings):
    mocker.patch(
        "common.command_utils.run_command",
        return_value=MagicMock(returncode=0, stdout="Filesystem  Size"),
    )
    assert run_diagnostic_command(["df", "-h"], mock_app_settings) == "Filesystem  Size"


def test_command_exists(mocker):
    mocker.patch("common.command_utils.shutil.which", return_value="/usr/bin/docker")
    assert command_exists("docker") is True
    mocker.patch("common.command_utils.shutil.which", return_value=None)
    assert command_exists("docker") is False


def test_check_package_installed(mocker, mock_logger, mock_app_settings):
    run_command_mock = mocker.patch(
        "common.command_utils.run_command",
        return_value=MagicMock(returncode=0, stdout="install ok installed"),
    )

    assert check_package_installed("curl", mock_app_settings, mock_logger) is True
    run_command_mock.assert_called_once_with(
        ["dpkg-query", "-W", "-f=${Status}", "curl"],
        mock_app_settings,
        check=False,
        capture_output=True,
        current_logger=mock_logger,
    )


def test_check_package_installed_not_installed(mocker, mock_app_settings):
    mocker.patch(
        "common.command_utils.run_command",
        return_value=MagicMock(returncode=1, stdout=""),
    )
    assert check_package_installed("curl", mock_app_settings) is False


def test_check_package_installed_dpkg_query_not_found(mocker, mock_logger, mock_app_settings):
    mocker.patch("common.command_utils.run_command", side_effect=FileNotFoundError)

    assert check_package_installed("curl", mock_app_settings, mock_logger) is False
    mock_logger.error.assert_called_once()
