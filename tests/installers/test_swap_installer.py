import subprocess

import pytest

from installers.components.swap_installer import SwapInstaller
from provision.config import FSTAB_PATH, SYSCTL_CONF_PATH

MODULE = "installers.components.swap_installer"


@pytest.fixture
def patched(mocker):
    return {
        "run": mocker.patch(f"{MODULE}.run_elevated_command"),
        "append": mocker.patch(f"{MODULE}.append_line_if_missing", return_value=True),
        "diagnostic": mocker.patch(f"{MODULE}.run_diagnostic_command"),
        "disk": mocker.patch(f"{MODULE}.log_disk_diagnostics"),
        "backup": mocker.patch(f"{MODULE}.backup_file", return_value=True),
    }


def _commands(mock_run):
    return [c.args[0][0] for c in mock_run.call_args_list]


def test_creates_and_enables_swap(app_settings, mock_logger, patched):
    swap_file = app_settings.swap.file_path

    assert SwapInstaller(app_settings, mock_logger).install() is True

    assert _commands(patched["run"]) == ["fallocate", "chmod", "mkswap", "swapon", "sysctl"]
    patched["backup"].assert_called_once_with(FSTAB_PATH, app_settings, mock_logger)
    patched["run"].assert_any_call(
        ["fallocate", "-l", "4G", swap_file], app_settings, current_logger=mock_logger
    )
    patched["append"].assert_any_call(
        FSTAB_PATH, f"{swap_file} none swap sw 0 0", app_settings, mock_logger
    )
    patched["append"].assert_any_call(
        SYSCTL_CONF_PATH, "vm.swappiness=10", app_settings, mock_logger
    )
    patched["append"].assert_any_call(
        SYSCTL_CONF_PATH, "vm.vfs_cache_pressure=50", app_settings, mock_logger
    )
    diagnostics = [c.args[0] for c in patched["diagnostic"].call_args_list]
    assert diagnostics == [["swapon", "--show"], ["free", "-h"]]


def test_existing_swap_file_is_left_alone(app_settings, mock_logger, patched, logged):
    with open(app_settings.swap.file_path, "w") as f:
        f.write("")

    assert SwapInstaller(app_settings, mock_logger).install() is True

    patched["run"].assert_not_called()
    patched["append"].assert_not_called()
    assert "Swap file already exists, skipping swap setup" in logged("info")


def test_falls_back_to_dd(app_settings, mock_logger, patched, logged):
    def fail_fallocate(command, *args, **kwargs):
        if command[0] == "fallocate":
            raise subprocess.CalledProcessError(1, command)

    patched["run"].side_effect = fail_fallocate

    assert SwapInstaller(app_settings, mock_logger).install() is True

    assert _commands(patched["run"])[:3] == ["fallocate", "dd", "chmod"]
    assert any("trying dd instead" in m for m in logged("error"))


def test_creation_failure_logs_disk_diagnostics(app_settings, mock_logger, patched, logged):
    patched["run"].side_effect = subprocess.CalledProcessError(1, "fallocate")

    assert SwapInstaller(app_settings, mock_logger).install() is False

    assert _commands(patched["run"]) == ["fallocate", "dd", "rm"]
    patched["disk"].assert_called_once()
    patched["append"].assert_not_called()


def test_failed_dd_removes_partial_swap_file(app_settings, mock_logger, patched, logged):
    def fail_allocation(command, *args, **kwargs):
        if command[0] in ("fallocate", "dd"):
            raise subprocess.CalledProcessError(1, command)

    patched["run"].side_effect = fail_allocation

    assert SwapInstaller(app_settings, mock_logger).install() is False

    patched["run"].assert_called_with(
        ["rm", "-f", app_settings.swap.file_path],
        app_settings,
        check=False,
        current_logger=mock_logger,
    )
    assert any("Failed to create swap file" in m for m in logged("error"))


def test_step_failure_does_not_stop_remaining_steps(app_settings, mock_logger, patched, logged):
    def fail_mkswap(command, *args, **kwargs):
        if command[0] == "mkswap":
            raise subprocess.CalledProcessError(1, command)

    patched["run"].side_effect = fail_mkswap

    assert SwapInstaller(app_settings, mock_logger).install() is False

    assert "swapon" in _commands(patched["run"])
    assert patched["append"].call_count == 3
    assert any("Failed to format swap file" in m for m in logged("error"))

