# provision/state_manager.py
# -*- coding: utf-8 -*-
"""
Manages the state file for tracking boot progress.

The file holds one completed step tag per line below a header carrying the
hash of the package sources; a changed hash clears the recorded steps.
"""

import datetime
import logging
import re
from pathlib import Path
from typing import Optional

from common.command_utils import (
    get_symbols,
    log_server_boot,
    run_elevated_command,
)
from common.file_utils import write_file_elevated
from common.system_utils import get_current_script_hash
from provision import config as static_config
from provision.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def _state_header(script_hash: str) -> str:
    return (
        f"# SCRIPT_HASH: {script_hash}\n"
        f"# Human-readable Script Version: {static_config.SCRIPT_VERSION}\n"
    )


def initialize_state_system(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Initialize the state management system.
    Ensures state directory and file exist. Checks script hash.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    state_file = Path(app_settings.state_file)
    state_dir = state_file.parent

    current_hash = get_current_script_hash(
        source_roots=static_config.SOURCE_ROOTS,
        app_settings=app_settings,
        logger_instance=logger_to_use,
    )
    if not current_hash:
        log_server_boot(
            f"{symbols.get('critical', '🔥')} Could not calculate current SCRIPT_HASH. "
            "State management cannot proceed reliably.",
            "critical",
            logger_to_use,
            app_settings,
        )

    if not state_dir.is_dir():
        log_server_boot(
            f"{symbols.get('info', 'ℹ️')} Creating state directory: {state_dir}",
            "info",
            logger_to_use,
            app_settings,
        )
        run_elevated_command(
            ["mkdir", "-p", str(state_dir)],
            app_settings,
            current_logger=logger_to_use,
        )
        run_elevated_command(
            ["chmod", "750", str(state_dir)],
            app_settings,
            current_logger=logger_to_use,
        )

    if not state_file.is_file():
        log_server_boot(
            f"{symbols.get('info', 'ℹ️')} State file {state_file} does not exist. Initializing.",
            "info",
            logger_to_use,
            app_settings,
        )
        write_file_elevated(
            str(state_file),
            _state_header(current_hash or "UNKNOWN_HASH_INIT"),
            app_settings,
            mode="640",
            current_logger=logger_to_use,
        )
        return

    stored_hash = read_stored_hash(app_settings, logger_to_use)
    if not current_hash or stored_hash != current_hash:
        reason = (
            "Could not calculate current hash"
            if not current_hash
            else f"SCRIPT_HASH mismatch. Stored: {stored_hash}, Current: {current_hash}"
        )
        log_server_boot(
            f"{symbols.get('warning', '!')} {reason}",
            "warning",
            logger_to_use,
            app_settings,
        )
        log_server_boot(
            f"{symbols.get('info', 'ℹ️')} Clearing state file due to hash issue or mismatch.",
            "info",
            logger_to_use,
            app_settings,
        )
        clear_state_file(
            app_settings,
            script_hash_to_write=current_hash,
            current_logger=logger_to_use,
        )


def read_stored_hash(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Returns the SCRIPT_HASH recorded in the state file header, if any."""
    logger_to_use = current_logger if current_logger else module_logger
    result = run_elevated_command(
        ["grep", "^# SCRIPT_HASH:", str(app_settings.state_file)],
        app_settings,
        check=False,
        capture_output=True,
        current_logger=logger_to_use,
    )
    if result.returncode != 0 or not result.stdout:
        return None
    match = re.search(r"^# SCRIPT_HASH:\s*(\S+)", result.stdout, re.MULTILINE)
    return match.group(1) if match else None


def clear_state_file(
    app_settings: AppSettings,
    script_hash_to_write: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    state_file = str(app_settings.state_file)
    log_server_boot(
        f"{symbols.get('info', 'ℹ️')} Clearing state file: {state_file}",
        "info",
        logger_to_use,
        app_settings,
    )

    effective_hash = script_hash_to_write
    if effective_hash is None:
        effective_hash = (
            get_current_script_hash(
                source_roots=static_config.SOURCE_ROOTS,
                app_settings=app_settings,
                logger_instance=logger_to_use,
            )
            or "UNKNOWN_HASH_AT_CLEAR"
        )

    content = _state_header(effective_hash)
    content += f"# State cleared/re-initialized on {datetime.datetime.now().isoformat()}\n"

    try:
        write_file_elevated(
            state_file,
            content,
            app_settings,
            mode="640",
            current_logger=logger_to_use,
        )
        log_server_boot(
            f"{symbols.get('success', '✅')} State file re-initialized with SCRIPT_HASH: {effective_hash}.",
            "success",
            logger_to_use,
            app_settings,
        )
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Failed to clear/re-initialize state file: {e}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )


def mark_step_completed(
    step_tag: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    state_file = str(app_settings.state_file)
    try:
        if is_step_completed(step_tag, app_settings, logger_to_use):
            log_server_boot(
                f"{symbols.get('info', 'ℹ️')} Step '{step_tag}' was already marked as completed.",
                "info",
                logger_to_use,
                app_settings,
            )
            return
        log_server_boot(
            f"{symbols.get('info', 'ℹ️')} Marking step '{step_tag}' as completed.",
            "info",
            logger_to_use,
            app_settings,
        )
        run_elevated_command(
            ["tee", "-a", state_file],
            app_settings,
            cmd_input=f"{step_tag}\n",
            capture_output=True,
            current_logger=logger_to_use,
        )
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Error marking step '{step_tag}': {e}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )


def is_step_completed(
    step_tag: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_elevated_command(
            ["grep", "-Fxq", step_tag, str(app_settings.state_file)],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
        return result.returncode == 0
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Error checking if step '{step_tag}' is completed: {e}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )
        return False


def write_completion_marker(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Touches the completion marker file read by external tooling."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    marker = str(app_settings.completion_marker)
    try:
        run_elevated_command(
            ["touch", marker], app_settings, current_logger=logger_to_use
        )
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} Could not create completion marker {marker}: {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        return False
    return True
