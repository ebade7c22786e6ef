# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
import subprocess
from typing import Dict, List, Optional, Union

from common.command_utils import (
    check_package_installed,
    command_exists,
    run_command,
    run_diagnostic_command,
    run_elevated_command,
)
from common.debian.apt_locks import AptLockWaiter
from common.file_utils import write_file_elevated
from common.retry import retry_with_policy
from provision.config import APT_TERM_LOG_PATH
from provision.config_models import AppSettings, RetryPolicy

SOURCES_DIR = "/etc/apt/sources.list.d"


class AptManager:
    """
    A centralized manager for Debian apt packages using command-line tools.

    Every apt-get invocation waits for the package manager's lock files and
    is retried with the configured policy, so a busy first boot (unattended
    upgrades, cloud-init) does not abort provisioning.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        lock_waiter: Optional[AptLockWaiter] = None,
    ):
        """
        Initializes the AptManager.
        Args:
            app_settings: The application settings.
            logger: An optional logging object.
            lock_waiter: Lock waiter to use; one is created from the settings if omitted.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )
        self.lock_waiter = lock_waiter or AptLockWaiter(
            app_settings, logger=self.logger
        )

    def wait_for_locks(self) -> bool:
        """Waits for apt locks; returns False on timeout without raising."""
        return self.lock_waiter.wait()

    def run_apt_command(
        self,
        cmd: List[str],
        description: str,
        policy: Optional[RetryPolicy] = None,
    ) -> bool:
        """
        Runs an apt command with lock waiting before each attempt and bounded retry.

        Args:
            cmd: The apt command line.
            description: Operation name for the log.
            policy: Retry policy; defaults to the settings' policy.

        Returns:
            True if an attempt succeeded, False otherwise.
        """

        def attempt() -> subprocess.CompletedProcess:
            return run_elevated_command(
                cmd,
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )

        return retry_with_policy(
            description,
            attempt,
            policy or self.app_settings.retry,
            current_logger=self.logger,
            app_settings=self.app_settings,
            before_attempt=self.wait_for_locks,
            sleep=self.lock_waiter.sleep,
        )

    def update(self, policy: Optional[RetryPolicy] = None) -> bool:
        """
        Updates the list of available packages using 'apt-get update'.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Updating package lists")
        return self.run_apt_command(
            ["apt-get", "update", "-y"], "package list update", policy
        )

    def is_installed(self, pkg_name: str) -> bool:
        return check_package_installed(
            pkg_name, self.app_settings, current_logger=self.logger
        )

    def install(
        self,
        packages: Union[List[str], str],
        description: Optional[str] = None,
        update_first: bool = False,
        policy: Optional[RetryPolicy] = None,
    ) -> bool:
        """
        Installs one or more packages using 'apt-get install'.

        Args:
            packages: A single package name or a list of package names.
            description: Operation name for the log.
            update_first: Whether to update the package lists before installing.
            policy: Retry policy; defaults to the settings' policy.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(packages, list):
            packages = [packages]

        if update_first:
            if not self.update(policy):
                return False

        packages_to_install = []
        for pkg_name in packages:
            if self.is_installed(pkg_name):
                self.logger.info(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )
            else:
                self.logger.info(
                    f"Marking package for installation: {pkg_name}"
                )
                packages_to_install.append(pkg_name)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        return self.run_apt_command(
            ["apt-get", "-y", "install"] + packages_to_install,
            description or f"installation of {', '.join(packages_to_install)}",
            policy,
        )

    def add_repository(
        self,
        repo_name: str,
        repo_details: Dict[str, str],
        update_after: bool = True,
    ) -> bool:
        """
        Adds a new apt repository by creating a deb822-style .sources file.

        Args:
            repo_name: The name for the repository file.
            repo_details: A dictionary containing the repository configuration.
            update_after: Whether to update package lists after adding.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(
            f"Adding repository '{repo_name}' using deb822 format..."
        )
        repo_file_path = os.path.join(SOURCES_DIR, f"{repo_name}.sources")

        deb822_content = "".join(
            f"{key}: {value}\n" for key, value in repo_details.items()
        )

        try:
            write_file_elevated(
                repo_file_path,
                deb822_content,
                self.app_settings,
                mode="644",
                current_logger=self.logger,
            )
            self.logger.info(
                f"Successfully created repository file: {repo_file_path}"
            )
        except Exception as e:
            self.logger.error(
                f"Failed to create repository file '{repo_file_path}': {e}"
            )
            return False

        if update_after:
            return self.update()
        return True

    def add_gpg_key_from_url(self, key_url: str, keyring_path: str) -> bool:
        """
        Downloads an ASCII-armoured GPG key and stores it dearmoured in a keyring file.

        Args:
            key_url: The URL of the GPG key.
            keyring_path: The path to save the keyring file.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(f"Adding GPG key from {key_url} to {keyring_path}")

        keyring_dir = os.path.dirname(keyring_path)
        temp_key_path = f"/tmp/{os.path.basename(keyring_path)}.asc"

        try:
            if keyring_dir and not os.path.exists(keyring_dir):
                run_elevated_command(
                    ["install", "-m", "0755", "-d", keyring_dir],
                    self.app_settings,
                    current_logger=self.logger,
                )
            run_command(
                ["curl", "-fsSL", key_url, "-o", temp_key_path],
                self.app_settings,
                check=True,
                current_logger=self.logger,
            )
            run_elevated_command(
                ["gpg", "--batch", "--yes", "--dearmor", "-o", keyring_path, temp_key_path],
                self.app_settings,
                current_logger=self.logger,
            )
            run_elevated_command(
                ["chmod", "a+r", keyring_path],
                self.app_settings,
                current_logger=self.logger,
            )
            self.logger.info("GPG key added and permissions set.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to add GPG key: {e}")
            return False
        finally:
            if os.path.exists(temp_key_path):
                os.unlink(temp_key_path)

    def log_package_policy(self, packages: List[str]) -> None:
        """Logs `apt-cache policy` for packages that failed to install."""
        self.logger.info("Available packages:")
        run_diagnostic_command(
            ["apt-cache", "policy"] + list(packages),
            self.app_settings,
            self.logger,
        )

    def log_term_log(self) -> None:
        """Logs the dpkg terminal log written during the last apt run."""
        if not os.path.exists(APT_TERM_LOG_PATH):
            self.logger.info("Could not read apt term log")
            return
        run_diagnostic_command(
            ["cat", APT_TERM_LOG_PATH], self.app_settings, self.logger
        )
