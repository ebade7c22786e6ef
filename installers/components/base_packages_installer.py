# installers/components/base_packages_installer.py
# -*- coding: utf-8 -*-
"""
Base packages installer module.

Refreshes the package lists and installs the packages every later section
relies on (HTTPS transport, CA certificates, curl, gnupg, lsb-release).
Both operations are retried; a failure is logged and the boot continues.
"""

import logging
from typing import Optional

from common.debian.apt_manager import AptManager
from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry
from provision.config_models import AppSettings


@InstallerRegistry.register(
    name="base_packages",
    metadata={
        "description": "System package list update and essential packages",
    },
)
class BasePackagesInstaller(BaseInstaller):
    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        apt_manager: Optional[AptManager] = None,
    ):
        super().__init__(app_settings, logger)
        self._apt_manager = apt_manager

    @property
    def apt_manager(self) -> AptManager:
        if self._apt_manager is None:
            self._apt_manager = AptManager(self.app_settings, logger=self.logger)
        return self._apt_manager

    @property
    def packages(self):
        return self.app_settings.apt.essential_packages

    def is_installed(self) -> bool:
        return all(self.apt_manager.is_installed(pkg) for pkg in self.packages)

    def install(self) -> bool:
        """
        Updates the package lists, then installs the essential packages.

        Returns:
            True only when both operations succeeded. Either failure is a
            warning; the caller continues with the next section regardless.
        """
        warning = self.symbols.get("warning", "!")
        self.log(f"{self.symbols.get('package', '📦')} Updating system packages")

        updated = self.apt_manager.update()
        if not updated:
            self.log(
                f"{warning} WARNING: Package list update failed after all retries, continuing anyway...",
                "warning",
            )

        self.log(f"{self.symbols.get('package', '📦')} Installing essential packages")
        installed = self.apt_manager.install(
            self.packages, description="essential package installation"
        )
        if not installed:
            self.log(
                f"{warning} WARNING: Essential package installation failed after all retries",
                "warning",
            )
            self.apt_manager.log_package_policy(self.packages)
            self.log("Continuing with limited functionality...", "warning")

        return updated and installed
