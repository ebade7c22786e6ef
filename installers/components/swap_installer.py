# installers/components/swap_installer.py
# -*- coding: utf-8 -*-
"""
Swap installer module.

Creates and enables a swap file, persists it in /etc/fstab and tunes the
kernel's swappiness. Each sub-task logs its own failure and the remaining
sub-tasks still run.
"""

import os
import subprocess
from typing import List

from common.command_utils import (
    run_diagnostic_command,
    run_elevated_command,
)
from common.file_utils import append_line_if_missing, backup_file
from common.system_utils import log_disk_diagnostics
from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry
from provision.config import FSTAB_PATH, SYSCTL_CONF_PATH


@InstallerRegistry.register(
    name="swap",
    metadata={
        "description": "Swap file with persistent fstab entry and sysctl tuning",
    },
)
class SwapInstaller(BaseInstaller):
    """Provisions ``swap.file_path`` of ``swap.size_gb`` gigabytes."""

    @property
    def swap_file(self) -> str:
        return self.app_settings.swap.file_path

    @property
    def fstab_line(self) -> str:
        return f"{self.swap_file} none swap sw 0 0"

    def is_installed(self) -> bool:
        return os.path.exists(self.swap_file)

    def install(self) -> bool:
        size_gb = self.app_settings.swap.size_gb
        self.log(f"Setting up swap space ({size_gb}GB)")

        if self.is_installed():
            self.log("Swap file already exists, skipping swap setup")
            return True

        if not self._create_swap_file(size_gb):
            return False

        ok = True
        for description, command in (
            ("set permissions on", ["chmod", "600", self.swap_file]),
            ("format", ["mkswap", self.swap_file]),
            ("enable", ["swapon", self.swap_file]),
        ):
            ok = self._run_step(description, command) and ok

        ok = self._persist_settings() and ok

        run_diagnostic_command(["swapon", "--show"], self.app_settings, self.logger)
        run_diagnostic_command(["free", "-h"], self.app_settings, self.logger)
        return ok

    def _create_swap_file(self, size_gb: int) -> bool:
        error = self.symbols.get("error", "❌")
        try:
            run_elevated_command(
                ["fallocate", "-l", f"{size_gb}G", self.swap_file],
                self.app_settings,
                current_logger=self.logger,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(
                f"{error} ERROR: fallocate failed, trying dd instead...", "error"
            )

        try:
            run_elevated_command(
                ["dd", "if=/dev/zero", f"of={self.swap_file}", "bs=1G", f"count={size_gb}"],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(f"{error} ERROR: Failed to create swap file", "error")
            log_disk_diagnostics(
                os.path.dirname(self.swap_file) or "/",
                self.app_settings,
                self.logger,
            )
            self._remove_partial_swap_file()
            return False

    def _remove_partial_swap_file(self) -> None:
        # A leftover file would make the next boot skip swap setup.
        try:
            run_elevated_command(
                ["rm", "-f", self.swap_file],
                self.app_settings,
                check=False,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(
                f"{self.symbols.get('warning', '!')} Could not remove partial swap file {self.swap_file}",
                "warning",
            )

    def _run_step(self, description: str, command: List[str]) -> bool:
        try:
            run_elevated_command(
                command, self.app_settings, current_logger=self.logger
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Failed to {description} swap file",
                "error",
            )
            return False

    def _persist_settings(self) -> bool:
        ok = True
        try:
            backup_file(FSTAB_PATH, self.app_settings, self.logger)
            append_line_if_missing(
                FSTAB_PATH, self.fstab_line, self.app_settings, self.logger
            )
            for setting in self.app_settings.swap.sysctl_settings:
                append_line_if_missing(
                    SYSCTL_CONF_PATH, setting, self.app_settings, self.logger
                )
        except (subprocess.CalledProcessError, FileNotFoundError, OSError) as e:
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Failed to persist swap settings: {e}",
                "error",
            )
            ok = False

        ok = self._apply_sysctl() and ok
        return ok

    def _apply_sysctl(self) -> bool:
        try:
            run_elevated_command(
                ["sysctl", "-p"],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Failed to apply sysctl settings",
                "error",
            )
            return False
