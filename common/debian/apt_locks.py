# common/debian/apt_locks.py
# -*- coding: utf-8 -*-
"""
Waiting for the Debian package manager's lock files to be released.

Cloud images commonly run unattended upgrades on first boot, so apt can be
busy for many minutes before this sequence gets a turn. The waiter polls the
lock files with ``lsof`` and gives up after a bounded number of polls.
"""

import logging
import re
import time
from typing import Callable, List, Optional

from common.command_utils import (
    get_symbols,
    log_server_boot,
    run_command,
    run_diagnostic_command,
)
from provision.config_models import AppSettings

PACKAGE_PROCESS_PATTERN = re.compile(r"\b(apt|apt-get|dpkg|unattended-upgr\w*)\b")


class AptLockWaiter:
    """Polls apt/dpkg lock files until none is held or the poll budget runs out."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep if sleep is not None else time.sleep
        self.lock_files: List[str] = list(app_settings.apt.lock_files)
        self.max_checks: int = app_settings.apt.lock_max_checks
        self.check_interval: float = app_settings.apt.lock_check_interval
        self._lsof_missing_reported = False

    def is_lock_held(self, lock_file: str) -> bool:
        """
        Returns True when some process has ``lock_file`` open.

        ``lsof`` exits 0 only when it finds an open handle. If ``lsof`` is not
        installed the lock is treated as free.
        """
        try:
            result = run_command(
                ["lsof", lock_file],
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
        except FileNotFoundError:
            if not self._lsof_missing_reported:
                log_server_boot(
                    f"{get_symbols(self.app_settings).get('warning', '!')} 'lsof' not found; assuming apt locks are free.",
                    "warning",
                    self.logger,
                    self.app_settings,
                )
                self._lsof_missing_reported = True
            return False
        return result.returncode == 0

    def held_locks(self) -> List[str]:
        return [lock for lock in self.lock_files if self.is_lock_held(lock)]

    def wait(self) -> bool:
        """
        Waits for every lock file to be released.

        Returns:
            True once no lock is held. False after ``max_checks`` polls that all
            found a lock; diagnostics are logged but the caller may still proceed.
        """
        symbols = get_symbols(self.app_settings)
        log_server_boot(
            "Checking for apt locks...", "info", self.logger, self.app_settings
        )

        for check in range(1, self.max_checks + 1):
            if not self.held_locks():
                log_server_boot(
                    "Apt locks released, proceeding...",
                    "info",
                    self.logger,
                    self.app_settings,
                )
                return True
            log_server_boot(
                f"Waiting for apt locks to be released (attempt {check}/{self.max_checks})... "
                f"waiting {self.check_interval:g} seconds",
                "info",
                self.logger,
                self.app_settings,
            )
            self.sleep(self.check_interval)

        total_minutes = self.max_checks * self.check_interval / 60
        log_server_boot(
            f"{symbols.get('error', '❌')} ERROR: Timed out waiting for apt locks after {total_minutes:g} minutes",
            "error",
            self.logger,
            self.app_settings,
        )
        self.log_lock_diagnostics()
        return False

    def log_lock_diagnostics(self) -> None:
        """Logs which processes hold the locks and every running package process."""
        log_server_boot(
            "Checking which processes are holding the locks:",
            "info",
            self.logger,
            self.app_settings,
        )
        for lock_file in self.lock_files:
            run_diagnostic_command(
                ["lsof", lock_file], self.app_settings, self.logger
            )

        log_server_boot(
            "Running package processes:", "info", self.logger, self.app_settings
        )
        ps_output = run_diagnostic_command(
            ["ps", "aux"], self.app_settings, self.logger
        )
        for line in (ps_output or "").splitlines()[1:]:
            if PACKAGE_PROCESS_PATTERN.search(line):
                log_server_boot(
                    f"   {line}", "info", self.logger, self.app_settings
                )
