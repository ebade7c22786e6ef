# installers/components/placeholder_installers.py
# -*- coding: utf-8 -*-
"""
Sections of the boot sequence that are reserved but not implemented yet.

Each one logs that it needs implementation and succeeds, so the sequence
keeps its full shape.
"""

from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry


class PlaceholderInstaller(BaseInstaller):
    """Logs ``<section> section needs implementation`` and succeeds."""

    section_title = ""

    def install(self) -> bool:
        self.log(f"{self.symbols.get('step', '➡️')} {self.section_title}")
        self.log(f"{self.section_title} section needs implementation")
        return True

    def is_installed(self) -> bool:
        return False


@InstallerRegistry.register(
    name="security_hardening",
    metadata={"description": "Security hardening (placeholder)"},
)
class SecurityHardeningInstaller(PlaceholderInstaller):
    section_title = "Security hardening"


@InstallerRegistry.register(
    name="firewall",
    metadata={"description": "Firewall setup (placeholder)"},
)
class FirewallInstaller(PlaceholderInstaller):
    section_title = "Firewall setup"


@InstallerRegistry.register(
    name="wordpress_setup",
    metadata={"description": "WordPress setup (placeholder)"},
)
class WordPressSetupInstaller(PlaceholderInstaller):
    section_title = "WordPress setup"


@InstallerRegistry.register(
    name="git_repository",
    metadata={"description": "Git repository setup (placeholder)"},
)
class GitRepositoryInstaller(PlaceholderInstaller):
    section_title = "Git repository setup"


@InstallerRegistry.register(
    name="wordpress_deployment",
    metadata={
        "description": "WordPress deployment (placeholder)",
    },
)
class WordPressDeploymentInstaller(PlaceholderInstaller):
    section_title = "WordPress deployment"
