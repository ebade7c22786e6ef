# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the server boot sequence.

This module includes OS detection from /etc/os-release, the package
architecture, diagnostic snapshots (disk, memory, directory listings),
user home discovery and the source hash used to invalidate stale state.
"""

import hashlib
import logging
import pwd
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from common.command_utils import (
    get_symbols,
    log_server_boot,
    run_command,
    run_diagnostic_command,
)
from provision.config_models import AppSettings

module_logger = logging.getLogger(__name__)

OS_RELEASE_PATH = "/etc/os-release"

CACHED_SCRIPT_HASH: Optional[str] = None


def read_os_release(os_release_path: str = OS_RELEASE_PATH) -> Dict[str, str]:
    """
    Parses an os-release file into a dict. Missing or unreadable files yield
    an empty dict.
    """
    values: Dict[str, str] = {}
    try:
        content = Path(os_release_path).read_text(encoding="utf-8")
    except OSError:
        return values
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def get_os_id(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
    os_release_path: str = OS_RELEASE_PATH,
) -> str:
    """
    Get the distribution id (e.g., 'ubuntu', 'debian') from os-release.

    Returns "unknown" when it cannot be detected.
    """
    logger_to_use = current_logger if current_logger else module_logger
    os_id = read_os_release(os_release_path).get("ID", "").lower()
    if os_id:
        log_server_boot(
            f"Detected OS: {os_id}", "info", logger_to_use, app_settings
        )
        return os_id
    log_server_boot(
        f"{get_symbols(app_settings).get('warning', '!')} Could not detect OS, defaulting to unknown",
        "warning",
        logger_to_use,
        app_settings,
    )
    return "unknown"


def get_debian_codename(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Get the release codename (e.g., 'bookworm', 'jammy').

    Uses ``lsb_release -cs`` and falls back to VERSION_CODENAME in os-release.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    try:
        result: subprocess.CompletedProcess = run_command(
            ["lsb_release", "-cs"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
        if result.stdout and result.stdout.strip():
            return result.stdout.strip()
    except FileNotFoundError:
        log_server_boot(
            f"{symbols.get('warning', '!')} lsb_release command not found. Falling back to {OS_RELEASE_PATH}.",
            "warning",
            logger_to_use,
            app_settings,
        )
    except subprocess.CalledProcessError:
        # run_command already logged the failure.
        pass

    return read_os_release().get("VERSION_CODENAME") or None


def get_architecture(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """
    Returns the dpkg architecture (e.g., 'amd64').

    Raises:
        subprocess.CalledProcessError: If dpkg fails.
    """
    result = run_command(
        ["dpkg", "--print-architecture"],
        app_settings,
        capture_output=True,
        check=True,
        current_logger=current_logger,
    )
    return result.stdout.strip()


def log_system_status(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Logs disk and memory usage (``df -h`` and ``free -h``)."""
    run_diagnostic_command(["df", "-h"], app_settings, current_logger)
    run_diagnostic_command(["free", "-h"], app_settings, current_logger)


def log_disk_diagnostics(
    directory: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Logs a directory listing and disk usage after a failed disk operation."""
    run_diagnostic_command(["ls", "-la", directory], app_settings, current_logger)
    run_diagnostic_command(["df", "-h"], app_settings, current_logger)


def list_home_users(home_root: str) -> List[Tuple[str, Path]]:
    """
    Lists ``(username, home_dir)`` for every directory under ``home_root``.

    The directory name is the username, matching the adduser convention.
    """
    root = Path(home_root)
    if not root.is_dir():
        return []
    return [
        (entry.name, entry)
        for entry in sorted(root.iterdir())
        if entry.is_dir()
    ]


def user_exists(username: str) -> bool:
    try:
        pwd.getpwnam(username)
    except KeyError:
        return False
    return True


def calculate_project_hash(
    source_roots: Sequence[Path],
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Calculate a SHA256 hash of all .py files below the given package directories.

    Each file contributes its path relative to the roots' parent directory
    (normalized to POSIX style, so the package name is part of it) followed
    by its content. This detects additions, deletions, renames and content
    changes inside the packages while ignoring anything installed beside them.

    Returns:
        The hex digest, or None if a root is missing or a file cannot be read.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    hasher = hashlib.sha256()

    files: List[Tuple[str, Path]] = []
    for root in (Path(r) for r in source_roots):
        if not root.is_dir():
            log_server_boot(
                f"{symbols.get('error', '❌')} Package directory '{root}' not found for hashing.",
                "error",
                logger_to_use,
                app_settings,
            )
            return None
        files.extend(
            (p.relative_to(root.parent).as_posix(), p)
            for p in root.rglob("*.py")
            if p.is_file()
        )

    for relative_name, file_path in sorted(files):
        try:
            hasher.update(relative_name.encode("utf-8"))
            hasher.update(file_path.read_bytes())
        except OSError as e_file:
            log_server_boot(
                f"{symbols.get('error', '❌')} Error reading file {file_path} for hashing: {e_file}",
                "error",
                logger_to_use,
                app_settings,
            )
            return None

    final_hash = hasher.hexdigest()
    log_server_boot(
        f"{symbols.get('debug', '🐛')} Calculated SCRIPT_HASH: {final_hash} from {len(files)} .py files.",
        "debug",
        logger_to_use,
        app_settings,
    )
    return final_hash


def get_current_script_hash(
    source_roots: Sequence[Path],
    app_settings: AppSettings,
    logger_instance: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Get the current script hash, calculating it if not already cached."""
    global CACHED_SCRIPT_HASH
    if CACHED_SCRIPT_HASH is None:
        CACHED_SCRIPT_HASH = calculate_project_hash(
            source_roots, app_settings, current_logger=logger_instance
        )
    return CACHED_SCRIPT_HASH
