# provision/step_executor.py
# -*- coding: utf-8 -*-
"""
Provides functionality to execute individual boot steps.

This module defines the named step, the context shared by every step, and a
function that runs one step: it checks its completion status, executes the
action (retrying it when the step carries a retry policy) and marks the step
as completed upon success.
"""

import enum
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, SecretStr

from common.command_utils import get_symbols, log_server_boot
from common.retry import retry_with_policy
from provision.config_models import AppSettings, RetryPolicy
from provision.state_manager import is_step_completed, mark_step_completed

module_logger = logging.getLogger(__name__)


class BootContext:
    """Settings, logger, resolved secrets and a scratch dict shared between steps."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.secrets: Dict[str, SecretStr] = {}
        self.data: Dict[str, Any] = {}


class BootStep:
    """
    A named unit of the boot sequence.

    ``action(context)`` returns False to indicate failure. Any other return
    value (including None) is success. An exception is always a failure.
    """

    def __init__(
        self,
        tag: str,
        description: str,
        action: Callable[[BootContext], Any],
        retry_policy: Optional[RetryPolicy] = None,
        fatal: bool = False,
        track_completion: bool = True,
    ):
        self.tag = tag
        self.description = description
        self.action = action
        self.retry_policy = retry_policy
        self.fatal = fatal
        self.track_completion = track_completion

    def __repr__(self) -> str:
        return f"BootStep(tag={self.tag!r}, fatal={self.fatal})"


class StepStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class StepOutcome(BaseModel):
    tag: str
    description: str
    status: StepStatus
    fatal: bool = False
    detail: str = ""


def _run_action(step: BootStep, context: BootContext) -> Any:
    if step.retry_policy is None:
        return step.action(context)
    return retry_with_policy(
        step.description,
        lambda: step.action(context),
        step.retry_policy,
        current_logger=context.logger,
        app_settings=context.app_settings,
    )


def execute_step(
    step: BootStep,
    context: BootContext,
    force: bool = False,
) -> StepOutcome:
    """
    Execute a single boot step.

    Args:
        step: The step to run.
        context: Shared boot context.
        force: Run the step even if the state file marks it completed.

    Returns:
        The step's outcome. Failures are logged, never raised.
    """
    app_settings = context.app_settings
    logger_to_use = context.logger
    symbols = get_symbols(app_settings)

    def outcome(status: StepStatus, detail: str = "") -> StepOutcome:
        return StepOutcome(
            tag=step.tag,
            description=step.description,
            status=status,
            fatal=step.fatal,
            detail=detail,
        )

    if (
        step.track_completion
        and not force
        and is_step_completed(step.tag, app_settings, logger_to_use)
    ):
        log_server_boot(
            f"{symbols.get('info', 'ℹ️')} Step '{step.description}' ({step.tag}) is already marked as completed. Skipping.",
            "info",
            logger_to_use,
            app_settings,
        )
        return outcome(StepStatus.SKIPPED, "already completed")

    log_server_boot(
        f"--- {symbols.get('step', '➡️')} Executing: {step.description} ({step.tag}) ---",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        step_result = _run_action(step, context)
    except Exception as e:
        log_server_boot(
            f"{symbols.get('error', '❌')} FAILED: {step.description} ({step.tag})",
            "error",
            logger_to_use,
            app_settings,
        )
        log_server_boot(
            f"   Error details: {str(e)}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )
        return outcome(StepStatus.FAILED, str(e))

    if step_result is False:
        log_server_boot(
            f"{symbols.get('error', '❌')} Step function returned False: {step.description} ({step.tag})",
            "error",
            logger_to_use,
            app_settings,
        )
        return outcome(StepStatus.FAILED, "step reported failure")

    if step.track_completion:
        mark_step_completed(step.tag, app_settings, logger_to_use)
    log_server_boot(
        f"--- {symbols.get('success', '✅')} Successfully completed: {step.description} ({step.tag}) ---",
        "success",
        logger_to_use,
        app_settings,
    )
    return outcome(StepStatus.SUCCEEDED)
