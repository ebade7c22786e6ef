# installers/base_installer.py
# -*- coding: utf-8 -*-
"""
Common interface of the provisioning sections.

A section is idempotent: ``is_installed`` reports whether its work is
already present and ``install`` performs it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from common.command_utils import get_symbols, log_server_boot
from provision.config_models import AppSettings


class BaseInstaller(ABC):
    """
    Base class for every provisioning section.

    ``install`` returns a bool and logs failures instead of raising, so one broken section never aborts the rest of the boot.
    """

    # Replaced per class by InstallerRegistry.register.
    metadata: Dict[str, Any] = {"description": ""}

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def symbols(self) -> Dict[str, str]:
        return get_symbols(self.app_settings)

    def log(self, message: str, level: str = "info") -> None:
        log_server_boot(message, level, self.logger, self.app_settings)

    @abstractmethod
    def install(self) -> bool:
        """Performs the section's work. True on success."""

    @abstractmethod
    def is_installed(self) -> bool:
        """True when the section's work is already present on the host."""

    def get_description(self) -> str:
        return str(self.metadata.get("description", ""))
