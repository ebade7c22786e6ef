# installers/components/completion_installer.py
# -*- coding: utf-8 -*-
"""
Completion section: final system status, Docker verification and the
completion marker file.
"""

from common.command_utils import command_exists, run_diagnostic_command
from common.system_utils import log_system_status
from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry
from provision.state_manager import write_completion_marker


@InstallerRegistry.register(
    name="completion",
    metadata={"description": "Boot completion report and marker"},
)
class CompletionInstaller(BaseInstaller):

    def is_installed(self) -> bool:
        return self.app_settings.completion_marker.exists()

    def install(self) -> bool:
        self.log(f"{self.symbols.get('sparkles', '✨')} SERVER BOOT SCRIPT COMPLETED SUCCESSFULLY")
        self.log("Final system status:")
        log_system_status(self.app_settings, self.logger)

        if command_exists("docker"):
            self.log(
                f"{self.symbols.get('success', '✅')} Docker installation SUCCESSFUL", "success"
            )
            run_diagnostic_command(["docker", "--version"], self.app_settings, self.logger)
        else:
            self.log(
                f"{self.symbols.get('warning', '!')} WARNING: Docker command not available after installation",
                "warning",
            )

        return write_completion_marker(self.app_settings, self.logger)
