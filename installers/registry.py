"""
Registry of provisioning sections.

Each installer module registers its class under the step tag it implements;
the sequencer looks installers up by that tag.
"""

import importlib
import logging
import pkgutil
from typing import Any, Dict, Optional, Type

from installers.base_installer import BaseInstaller

module_logger = logging.getLogger(__name__)

COMPONENTS_PACKAGE = "installers.components"


class InstallerRegistry:
    """Maps step tags to installer classes."""

    _registry: Dict[str, Type[BaseInstaller]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Class decorator registering an installer under ``name``.

        ``metadata`` carries a human-readable ``description``.

        Raises:
            ValueError: If ``name`` is already taken.
        """

        def decorator(installer_class: Type[BaseInstaller]) -> Type[BaseInstaller]:
            if name in cls._registry:
                raise ValueError(f"Installer with name '{name}' already registered")
            installer_class.metadata = {"description": "", **(metadata or {})}
            cls._registry[name] = installer_class
            return installer_class

        return decorator

    @classmethod
    def get_installer(cls, name: str) -> Type[BaseInstaller]:
        try:
            return cls._registry[name]
        except KeyError:
            raise KeyError(f"No installer registered with name '{name}'") from None

    @classmethod
    def get_all_installers(cls) -> Dict[str, Type[BaseInstaller]]:
        return dict(cls._registry)


def load_installer_modules(
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Type[BaseInstaller]]:
    """
    Imports every module in ``installers.components`` so each installer
    registers itself, then returns the registry contents.
    """
    logger_to_use = logger or module_logger
    package = importlib.import_module(COMPONENTS_PACKAGE)
    for module_info in pkgutil.iter_modules(package.__path__):
        importlib.import_module(f"{COMPONENTS_PACKAGE}.{module_info.name}")
        logger_to_use.debug(f"Imported installer module: {module_info.name}")
    return InstallerRegistry.get_all_installers()
