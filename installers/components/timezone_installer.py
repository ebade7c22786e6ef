# installers/components/timezone_installer.py
# -*- coding: utf-8 -*-
"""
Timezone installer module.

Sets the system timezone with ``timedatectl``.
"""

import subprocess

from common.command_utils import run_command, run_elevated_command
from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry


@InstallerRegistry.register(
    name="timezone",
    metadata={
        "description": "System timezone",
    },
)
class TimezoneInstaller(BaseInstaller):
    """Sets the system timezone to ``app_settings.timezone``."""

    def current_timezone(self) -> str:
        try:
            result = run_command(
                ["timedatectl", "show", "-p", "Timezone", "--value"],
                self.app_settings,
                check=True,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return ""
        return (result.stdout or "").strip()

    def is_installed(self) -> bool:
        return self.current_timezone() == self.app_settings.timezone

    def install(self) -> bool:
        timezone = self.app_settings.timezone
        self.log(f"Setting timezone to {timezone}")
        if self.is_installed():
            self.log(f"{self.symbols.get('info', 'ℹ️')} Timezone already set to {timezone}.")
            return True
        try:
            run_elevated_command(
                ["timedatectl", "set-timezone", timezone],
                self.app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Failed to set timezone to {timezone}: {e}",
                "error",
            )
            return False
        self.log(f"{self.symbols.get('success', '✅')} Timezone set to {timezone}", "success")
        return True
