# installers/components/shell_prompt_installer.py
# -*- coding: utf-8 -*-
"""
Shell prompt installer module.

Enables the coloured two-line prompt and common aliases in the skeleton
dotfiles for future users, and applies the same changes to every existing
home directory.
"""

import os
import subprocess
from pathlib import Path
from typing import List, Tuple

from common.file_utils import (
    chown_path,
    read_text_if_exists,
    replace_in_file,
    write_file_elevated,
)
from common.system_utils import list_home_users, user_exists
from installers.base_installer import BaseInstaller
from installers.registry import InstallerRegistry
from provision import config as static_config

PROMPT_REPLACEMENTS: List[Tuple[str, str]] = [
    (static_config.FORCE_COLOR_PROMPT_DISABLED, static_config.FORCE_COLOR_PROMPT_ENABLED),
    (static_config.STOCK_PROMPT, static_config.CUSTOM_PROMPT),
]


@InstallerRegistry.register(
    name="shell_prompt",
    metadata={
        "description": "Coloured bash prompt and aliases for all users",
    },
)
class ShellPromptInstaller(BaseInstaller):

    @property
    def skel_bashrc(self) -> str:
        return os.path.join(self.app_settings.prompt.skel_dir, ".bashrc")

    @property
    def skel_aliases(self) -> str:
        return os.path.join(self.app_settings.prompt.skel_dir, ".bash_aliases")

    def is_installed(self) -> bool:
        bashrc = read_text_if_exists(self.skel_bashrc) or ""
        return (
            static_config.CUSTOM_PROMPT in bashrc
            and read_text_if_exists(self.skel_aliases) == self.app_settings.prompt.aliases
        )

    def install(self) -> bool:
        self.log(f"{self.symbols.get('sparkles', '✨')} Customizing bash prompt for all users")
        ok = True

        try:
            replace_in_file(
                self.skel_bashrc, PROMPT_REPLACEMENTS, self.app_settings, current_logger=self.logger
            )
            write_file_elevated(
                self.skel_aliases,
                self.app_settings.prompt.aliases,
                self.app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError, OSError) as e:
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Failed to update skeleton dotfiles: {e}",
                "error",
            )
            ok = False

        for username, home_dir in list_home_users(self.app_settings.prompt.home_root):
            ok = self._apply_to_user(username, home_dir) and ok

        if ok:
            self.log(f"{self.symbols.get('success', '✅')} Bash prompt customization completed", "success")
        return ok

    def _apply_to_user(self, username: str, home_dir: Path) -> bool:
        if not user_exists(username):
            self.log(
                f"{self.symbols.get('warning', '!')} Skipping {home_dir}: no user named {username}",
                "warning",
            )
            return True
        self.log(f"Updating bash prompt for user: {username}")
        bashrc = str(home_dir / ".bashrc")
        aliases = str(home_dir / ".bash_aliases")
        try:
            if os.path.isfile(bashrc):
                replace_in_file(bashrc, PROMPT_REPLACEMENTS, self.app_settings, current_logger=self.logger)
                chown_path(bashrc, username, self.app_settings, self.logger)
            write_file_elevated(
                aliases, self.app_settings.prompt.aliases, self.app_settings, current_logger=self.logger
            )
            chown_path(aliases, username, self.app_settings, self.logger)
        except (subprocess.CalledProcessError, FileNotFoundError, OSError) as e:
            self.log(
                f"{self.symbols.get('error', '❌')} ERROR: Failed to update prompt for {username}: {e}",
                "error",
            )
            return False
        return True
