# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: backups, elevated writes and idempotent
line edits for system configuration files.
"""

import datetime
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from provision.config_models import AppSettings

from .command_utils import get_symbols, log_server_boot, run_elevated_command

module_logger = logging.getLogger(__name__)


def read_text_if_exists(file_path: str) -> Optional[str]:
    """Returns the file's text, or None when it does not exist or cannot be read."""
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except (FileNotFoundError, PermissionError, IsADirectoryError):
        return None


def backup_file(
    file_path: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Backup a specified file to a timestamped backup file.

    Parameters:
        file_path (str): The path of the file to be backed up.
        app_settings (Optional[AppSettings]): Application-specific settings, which
            may include customized symbols for log messages.
        current_logger (Optional[logging.Logger]): Logger instance to use for
            logging messages. If not provided, a module-level logger will be used.

    Returns:
        bool: True if the backup operation was successful or if no backup was
            needed (e.g., file does not exist). False if an error occurred
            during the backup process.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    try:
        run_elevated_command(
            ["test", "-f", file_path],
            app_settings,
            check=True,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except subprocess.CalledProcessError:
        log_server_boot(
            f"{symbols.get('info', 'ℹ️')} File {file_path} does not exist or is not a regular file. No backup needed.",
            "info",
            logger_to_use,
            app_settings,
        )
        return True
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Error pre-checking file existence for backup of {file_path}: {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        return False

    timestamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = f"{file_path}.bak.{timestamp}"
    try:
        run_elevated_command(
            ["cp", "-a", file_path, backup_path],
            app_settings,
            current_logger=logger_to_use,
        )
        log_server_boot(
            f"{symbols.get('success', '✅')} Backed up {file_path} to {backup_path}",
            "success",
            logger_to_use,
            app_settings,
        )
        return True
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Failed to backup {file_path} to {backup_path}: {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        return False


def write_file_elevated(
    file_path: str,
    content: str,
    app_settings: Optional[AppSettings],
    mode: str = "644",
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Writes ``content`` to ``file_path`` through a temporary file and an
    elevated ``install``, so root-owned files can be replaced atomically.

    Raises:
        subprocess.CalledProcessError: If the elevated copy fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    temp_file_path = ""
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            delete=False,
            prefix="serverboot_",
            suffix=".tmp",
            encoding="utf-8",
        ) as temp_f:
            temp_f.write(content)
            temp_file_path = temp_f.name
        run_elevated_command(
            ["install", "-m", mode, temp_file_path, file_path],
            app_settings,
            current_logger=logger_to_use,
        )
    finally:
        if temp_file_path and os.path.exists(temp_file_path):
            os.unlink(temp_file_path)


def append_line_if_missing(
    file_path: str,
    line: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Appends ``line`` to ``file_path`` unless an identical line is already present.

    Returns:
        True if the line was appended, False if it was already there.

    Raises:
        subprocess.CalledProcessError: If the elevated append fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    existing = read_text_if_exists(file_path) or ""
    if line.strip() in (existing_line.strip() for existing_line in existing.splitlines()):
        log_server_boot(
            f"'{line}' already present in {file_path}.",
            "debug",
            logger_to_use,
            app_settings,
        )
        return False

    prefix = "" if not existing or existing.endswith("\n") else "\n"
    run_elevated_command(
        ["tee", "-a", file_path],
        app_settings,
        cmd_input=f"{prefix}{line}\n",
        capture_output=True,
        current_logger=logger_to_use,
    )
    return True


def replace_in_file(
    file_path: str,
    replacements: List[Tuple[str, str]],
    app_settings: Optional[AppSettings],
    mode: str = "644",
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Applies literal ``(old, new)`` replacements to a file and rewrites it
    only when something changed.

    Returns:
        True if the file was rewritten, False if it was missing or unchanged.
    """
    logger_to_use = current_logger if current_logger else module_logger
    original = read_text_if_exists(file_path)
    if original is None:
        log_server_boot(
            f"{get_symbols(app_settings).get('warning', '!')} {file_path} not found; nothing to replace.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    updated = original
    for old, new in replacements:
        updated = updated.replace(old, new)

    if updated == original:
        return False

    write_file_elevated(
        file_path, updated, app_settings, mode=mode, current_logger=logger_to_use
    )
    return True


def chown_path(
    path: str,
    owner: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Sets ``owner:owner`` ownership on ``path``."""
    run_elevated_command(
        ["chown", f"{owner}:{owner}", path],
        app_settings,
        current_logger=current_logger,
    )
