# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Running external commands during boot.

Every command is logged before it runs; captured output is logged after it
finishes. Failures are logged and then re-raised so the calling installer
decides whether the boot continues.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional, Sequence

from provision.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)

_LEVEL_METHODS = {
    "debug": "debug",
    "info": "info",
    "success": "info",
    "warning": "warning",
    "error": "error",
    "critical": "critical",
}


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the logging symbols from the settings, or the defaults."""
    if app_settings is not None and getattr(app_settings, "symbols", None):
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def log_server_boot(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a boot message at the requested level.

    ``level`` is one of debug, info, success, warning, error or critical.
    "success" and unknown levels are logged at info. ``app_settings`` is
    accepted so every call site reads the same way; it does not change the
    record.
    """
    effective_logger = current_logger if current_logger else module_logger
    method = _LEVEL_METHODS.get(level, "info")
    getattr(effective_logger, method)(message, exc_info=exc_info)


def describe_command(command: Sequence[str]) -> str:
    """Shell-quoted rendering of ``command`` for log lines."""
    return subprocess.list2cmdline(list(command))


def _elevation_prefix() -> List[str]:
    return [] if os.geteuid() == 0 else ["sudo"]


def _log_streams(
    stdout: Optional[str],
    stderr: Optional[str],
    level: str,
    current_logger: logging.Logger,
    app_settings: Optional[AppSettings],
) -> None:
    for label, stream in (("stdout", stdout), ("stderr", stderr)):
        if stream and stream.strip():
            log_server_boot(
                f"   {label}: {stream.strip()}",
                level,
                current_logger,
                app_settings,
            )


def run_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> subprocess.CompletedProcess:
    """
    Runs ``command`` (an argument list, never a shell string).

    Args:
        command: Program and arguments.
        app_settings: Settings used for logging symbols.
        check: Raise CalledProcessError on a non-zero exit code.
        capture_output: Capture stdout/stderr as text and log them.
        cmd_input: Text fed to the command's standard input.
        current_logger: Logger to use instead of the module logger.

    Returns:
        The completed process.

    Raises:
        subprocess.CalledProcessError: Non-zero exit code with ``check=True``.
        FileNotFoundError: The program is not installed.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    command_str = describe_command(command)

    log_server_boot(
        f"{symbols.get('gear', '⚙️')} Executing: {command_str}",
        "info",
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            list(command),
            check=check,
            capture_output=capture_output,
            text=True,
            input=cmd_input,
        )
    except subprocess.CalledProcessError as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Command `{command_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        _log_streams(e.stdout, e.stderr, "error", effective_logger, app_settings)
        raise
    except FileNotFoundError as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Command not found: {e.filename or command[0]}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise

    if capture_output:
        _log_streams(result.stdout, result.stderr, "info", effective_logger, app_settings)
    return result


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> subprocess.CompletedProcess:
    """Like ``run_command``, prefixed with sudo unless the process is root."""
    return run_command(
        _elevation_prefix() + list(command),
        app_settings,
        check=check,
        capture_output=capture_output,
        cmd_input=cmd_input,
        current_logger=current_logger,
    )


def run_diagnostic_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Runs a best-effort diagnostic command (df, free, lsof, ...) and logs its
    output. Never raises; returns the captured stdout or None.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        result = run_command(
            command,
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except (OSError, subprocess.SubprocessError) as e:
        log_server_boot(
            f"{get_symbols(app_settings).get('warning', '!')} Diagnostic command `{describe_command(command)}` could not run: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    return result.stdout


def command_exists(command_name: str) -> bool:
    return shutil.which(command_name) is not None


def check_package_installed(
    package_name: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """True when dpkg reports ``install ok installed`` for ``package_name``."""
    logger_to_use = current_logger if current_logger else module_logger
    try:
        result = run_command(
            ["dpkg-query", "-W", "-f=${Status}", package_name],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except FileNotFoundError:
        log_server_boot(
            f"{get_symbols(app_settings).get('error', '❌')} dpkg-query command not found. Cannot check package '{package_name}'.",
            "error",
            logger_to_use,
            app_settings,
        )
        return False
    return result.returncode == 0 and "install ok installed" in (result.stdout or "")
