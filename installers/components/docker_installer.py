# installers/components/docker_installer.py
# -*- coding: utf-8 -*-
"""
Docker installer module.

This module provides a self-contained installer for Docker Engine and the
Compose plugin from Docker's own apt repository.
"""

import logging
import os
import subprocess
from typing import Optional

from common.command_utils import (
    command_exists,
    run_diagnostic_command,
    run_elevated_command,
)
from common.debian.apt_manager import AptManager
from common.retry import retry_operation
from common.system_utils import (
    get_architecture,
    get_debian_codename,
    get_os_id,
)
from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry
from provision.config_models import AppSettings


@InstallerRegistry.register(
    name="docker",
    metadata={
        "description": "Docker Engine container runtime and Compose plugin",
    },
)
class DockerInstaller(BaseInstaller):
    """
    Installer for Docker Engine container runtime.

    This installer ensures that Docker Engine and its associated components
    are installed and properly configured.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        apt_manager: Optional[AptManager] = None,
    ):
        """
        Initialize the Docker installer.

        Args:
            app_settings: The application settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
            apt_manager: Optional apt manager; created on first use if omitted.
        """
        super().__init__(app_settings, logger)
        self._apt_manager = apt_manager

    @property
    def apt_manager(self) -> AptManager:
        if self._apt_manager is None:
            self._apt_manager = AptManager(self.app_settings, logger=self.logger)
        return self._apt_manager

    def is_installed(self) -> bool:
        return command_exists("docker")

    def install(self) -> bool:
        """
        Install Docker Engine and its associated components.

        Returns:
            True if the installation was successful, False otherwise.
        """
        self.log(f"{self.symbols.get('rocket', '🚀')} Installing Docker and Docker Compose")

        if self.is_installed():
            self.log(f"{self.symbols.get('info', 'ℹ️')} Docker already installed")
            return True

        try:
            if not self._configure_docker_apt_repository():
                return False

            self.apt_manager.update()

            if not self._install_docker_packages():
                self.log(
                    f"{self.symbols.get('error', '❌')} ERROR: Docker installation failed after all attempts",
                    "error",
                )
                return False

            self._enable_docker_service()
            self._create_docker_group()
            self._link_compose_plugin()
        except Exception as e:
            self.log(
                f"{self.symbols.get('error', '❌')} Error installing Docker Engine: {str(e)}",
                "error",
            )
            return False

        run_diagnostic_command(
            ["systemctl", "status", "docker", "--no-pager"],
            self.app_settings,
            self.logger,
        )
        run_diagnostic_command(["docker", "--version"], self.app_settings, self.logger)
        self.log(
            f"{self.symbols.get('success', '✅')} Docker Engine installed successfully.",
            "success",
        )
        return True

    def _configure_docker_apt_repository(self) -> bool:
        docker_settings = self.app_settings.docker
        os_id = get_os_id(self.app_settings, self.logger)
        codename = get_debian_codename(self.app_settings, self.logger)
        if not codename:
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Could not determine the release codename for the Docker repository",
                "error",
            )
            return False
        arch = get_architecture(self.app_settings, self.logger)

        repo_url = f"{str(docker_settings.download_base_url).rstrip('/')}/{os_id}"
        if not self.apt_manager.add_gpg_key_from_url(
            f"{repo_url}/gpg", docker_settings.keyring_path
        ):
            return False

        return self.apt_manager.add_repository(
            "docker",
            {
                "Types": "deb",
                "URIs": repo_url,
                "Suites": codename,
                "Components": "stable",
                "Architectures": arch,
                "Signed-By": docker_settings.keyring_path,
            },
            update_after=False,
        )

    def _install_docker_packages(self) -> bool:
        docker_settings = self.app_settings.docker
        packages = list(docker_settings.packages)

        def attempt() -> subprocess.CompletedProcess:
            result = run_elevated_command(
                ["apt-get", "install", "-y"] + packages,
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
            if result.returncode != 0:
                self.apt_manager.log_term_log()
            return result

        return retry_operation(
            "Docker installation",
            attempt,
            max_attempts=docker_settings.install_attempts,
            wait_seconds=docker_settings.install_wait_seconds,
            current_logger=self.logger,
            app_settings=self.app_settings,
            before_attempt=self.apt_manager.wait_for_locks,
            sleep=self.apt_manager.lock_waiter.sleep,
        )

    def _enable_docker_service(self) -> None:
        for action in ("enable", "start"):
            try:
                run_elevated_command(
                    ["systemctl", action, "docker"],
                    self.app_settings,
                    current_logger=self.logger,
                )
            except (subprocess.CalledProcessError, FileNotFoundError):
                self.log(
                    f"{self.symbols.get('error', '❌')} ERROR: Failed to {action} docker service",
                    "error",
                )

    def _create_docker_group(self) -> None:
        # Users are not added to the group here; that is left to the operator.
        try:
            run_elevated_command(
                ["groupadd", "-f", "docker"],
                self.app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(
                f"{self.symbols.get('warning', '!')} Could not create docker group",
                "warning",
            )

    def _link_compose_plugin(self) -> None:
        docker_settings = self.app_settings.docker
        if not os.path.exists(docker_settings.compose_plugin_path):
            self.log(
                f"{self.symbols.get('warning', '!')} Compose plugin not found at {docker_settings.compose_plugin_path}",
                "warning",
            )
            return
        try:
            run_elevated_command(
                ["ln", "-sf", docker_settings.compose_plugin_path, docker_settings.compose_link_path],
                self.app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.log(
                f"{self.symbols.get('warning', '!')} Could not link docker-compose to {docker_settings.compose_link_path}",
                "warning",
            )
