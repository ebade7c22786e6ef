import subprocess

from installers.components.timezone_installer import TimezoneInstaller

MODULE = "installers.components.timezone_installer"


def _current(stdout):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


def test_sets_timezone(mocker, app_settings, mock_logger):
    mocker.patch(f"{MODULE}.run_command", return_value=_current("UTC\n"))
    mock_elevated = mocker.patch(f"{MODULE}.run_elevated_command")

    assert TimezoneInstaller(app_settings, mock_logger).install() is True

    mock_elevated.assert_called_once_with(
        ["timedatectl", "set-timezone", "America/New_York"],
        app_settings,
        current_logger=mock_logger,
    )


def test_already_set(mocker, app_settings, mock_logger):
    mocker.patch(f"{MODULE}.run_command", return_value=_current("America/New_York\n"))
    mock_elevated = mocker.patch(f"{MODULE}.run_elevated_command")

    assert TimezoneInstaller(app_settings, mock_logger).install() is True
    mock_elevated.assert_not_called()


def test_set_timezone_failure(mocker, app_settings, mock_logger, logged):
    mocker.patch(f"{MODULE}.run_command", side_effect=FileNotFoundError("timedatectl"))
    mocker.patch(
        f"{MODULE}.run_elevated_command",
        side_effect=subprocess.CalledProcessError(1, "timedatectl"),
    )

    assert TimezoneInstaller(app_settings, mock_logger).install() is False
    assert any("Failed to set timezone" in m for m in logged("error"))
