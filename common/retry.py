# common/retry.py
# -*- coding: utf-8 -*-
"""
Bounded retry for flaky provisioning operations.

An operation is attempted up to ``max_attempts`` times with a fixed wait
between attempts. Failure is reported as ``False``; the controller never
raises, so the caller decides whether the boot sequence continues.
"""

import logging
import subprocess
import time
from typing import Any, Callable, Optional

from common.command_utils import get_symbols, log_server_boot
from provision.config_models import AppSettings, RetryPolicy

module_logger = logging.getLogger(__name__)


def _describe_failure(result: Any) -> str:
    if isinstance(result, subprocess.CompletedProcess):
        return f"with exit code {result.returncode}"
    if isinstance(result, subprocess.CalledProcessError):
        return f"with exit code {result.returncode}"
    if isinstance(result, BaseException):
        return f"with error: {result}"
    return "with a failure result"


def _is_success(result: Any) -> bool:
    if result is False:
        return False
    if isinstance(result, subprocess.CompletedProcess):
        return result.returncode == 0
    return True


def retry_operation(
    name: str,
    action: Callable[[], Any],
    max_attempts: int = 5,
    wait_seconds: float = 30,
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    before_attempt: Optional[Callable[[], Any]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """
    Runs ``action`` until it succeeds or ``max_attempts`` is exhausted.

    ``action`` fails when it returns ``False``, returns a CompletedProcess with
    a non-zero return code, or raises. Any other result is a success.

    Args:
        name: Human-readable operation name used in every log line.
        action: Zero-argument callable performing one attempt.
        max_attempts: Maximum number of attempts (at least 1).
        wait_seconds: Fixed wait between attempts. No wait follows the last attempt.
        current_logger: Logger to use.
        app_settings: Settings for logging symbols.
        before_attempt: Optional hook run before each attempt (e.g. apt lock wait).
            A falsy result is logged as a warning; the attempt still runs.
        sleep: Sleep function, injectable for tests. Defaults to time.sleep.

    Returns:
        True if an attempt succeeded, False otherwise.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if wait_seconds < 0:
        raise ValueError("wait_seconds cannot be negative")

    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    sleep_fn = sleep if sleep is not None else time.sleep

    log_server_boot(f"Starting {name}...", "info", logger_to_use, app_settings)

    for attempt in range(1, max_attempts + 1):
        log_server_boot(
            f"Attempt {attempt}/{max_attempts} for {name}",
            "info",
            logger_to_use,
            app_settings,
        )

        if before_attempt is not None:
            try:
                ready = before_attempt()
            except Exception as e:
                ready = False
                log_server_boot(
                    f"{symbols.get('warning', '!')} Pre-attempt check for {name} raised: {e}",
                    "warning",
                    logger_to_use,
                    app_settings,
                )
            if not ready:
                log_server_boot(
                    f"{symbols.get('warning', '!')} WARNING: Pre-attempt check for {name} did not pass, but trying anyway",
                    "warning",
                    logger_to_use,
                    app_settings,
                )

        try:
            result = action()
        except Exception as e:
            result = e

        if not isinstance(result, BaseException) and _is_success(result):
            log_server_boot(
                f"{symbols.get('success', '✅')} SUCCESS: {name} completed on attempt {attempt}",
                "success",
                logger_to_use,
                app_settings,
            )
            return True

        log_server_boot(
            f"{symbols.get('error', '❌')} ERROR: {name} failed {_describe_failure(result)} on attempt {attempt}",
            "error",
            logger_to_use,
            app_settings,
        )

        if attempt < max_attempts:
            log_server_boot(
                f"Waiting {wait_seconds:g} seconds before next attempt...",
                "info",
                logger_to_use,
                app_settings,
            )
            sleep_fn(wait_seconds)

    log_server_boot(
        f"{symbols.get('error', '❌')} FAILED: {name} failed after {max_attempts} attempts",
        "error",
        logger_to_use,
        app_settings,
    )
    return False


def retry_with_policy(
    name: str,
    action: Callable[[], Any],
    policy: RetryPolicy,
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    before_attempt: Optional[Callable[[], Any]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """Convenience wrapper taking a ``RetryPolicy``."""
    return retry_operation(
        name,
        action,
        max_attempts=policy.max_attempts,
        wait_seconds=policy.wait_seconds,
        current_logger=current_logger,
        app_settings=app_settings,
        before_attempt=before_attempt,
        sleep=sleep,
    )
