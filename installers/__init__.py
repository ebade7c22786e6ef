"""
Provisioning sections for the server boot sequence.

Each section is an installer registered with ``InstallerRegistry`` and run
as one step of the boot sequence.
"""

from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry, load_installer_modules

__all__ = ["BaseInstaller", "InstallerRegistry", "load_installer_modules"]
