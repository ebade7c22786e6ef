# provision/sequencer.py
# -*- coding: utf-8 -*-
"""
Ordered execution of the boot steps.

The sequencer runs each step in turn; a non-fatal failure is logged and the
sequence continues, a fatal failure halts it. The resulting report decides
the process exit code.
"""

import logging
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from common.command_utils import get_symbols, log_server_boot
from installers.registry import InstallerRegistry, load_installer_modules
from provision.secret_manager import SecretManagerClient, load_boot_secrets
from provision.step_executor import (
    BootContext,
    BootStep,
    StepOutcome,
    StepStatus,
    execute_step,
)

module_logger = logging.getLogger(__name__)

SECRETS_STEP_TAG = "secrets"
COMPLETION_STEP_TAG = "completion"

DEFAULT_STEP_ORDER: List[str] = [
    "timezone",
    SECRETS_STEP_TAG,
    "base_packages",
    "swap",
    "docker",
    "security_hardening",
    "firewall",
    "shell_prompt",
    "wordpress_setup",
    "git_repository",
    "wordpress_deployment",
    COMPLETION_STEP_TAG,
]

EXIT_OK = 0
EXIT_STEP_FAILED = 1
EXIT_FATAL = 2


class SequenceReport(BaseModel):
    """Outcome of every step the sequencer visited."""

    outcomes: List[StepOutcome] = Field(default_factory=list)
    halted: bool = False

    @property
    def failed(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if o.status == StepStatus.FAILED]

    @property
    def fatal_failure(self) -> bool:
        return any(o.fatal for o in self.failed)

    @property
    def exit_code(self) -> int:
        if self.fatal_failure:
            return EXIT_FATAL
        if self.failed:
            return EXIT_STEP_FAILED
        return EXIT_OK

    def outcome_for(self, tag: str) -> Optional[StepOutcome]:
        for outcome in self.outcomes:
            if outcome.tag == tag:
                return outcome
        return None


def load_secrets_step(context: BootContext) -> bool:
    """Fetches the boot secrets into ``context.secrets``."""
    client = SecretManagerClient(
        context.app_settings.secrets, context.app_settings, context.logger
    )
    context.secrets = load_boot_secrets(
        client, context.app_settings, context.logger
    )
    log_server_boot(
        f"Loaded {len(context.secrets)} secrets",
        "info",
        context.logger,
        context.app_settings,
    )
    return True


def installer_step(tag: str, fatal: bool = False, track_completion: bool = True) -> BootStep:
    """Wraps the registered installer ``tag`` in a step that calls ``install()``."""
    installer_class = InstallerRegistry.get_installer(tag)

    def action(context: BootContext) -> bool:
        installer = installer_class(context.app_settings, context.logger)
        return installer.install()

    description = str(installer_class.metadata.get("description", "")) or tag
    return BootStep(
        tag,
        description,
        action,
        fatal=fatal,
        track_completion=track_completion,
    )


def build_default_steps(logger: Optional[logging.Logger] = None) -> List[BootStep]:
    """Builds the standard boot sequence in its fixed order."""
    load_installer_modules(logger)
    steps: List[BootStep] = []
    for tag in DEFAULT_STEP_ORDER:
        if tag == SECRETS_STEP_TAG:
            steps.append(
                BootStep(
                    SECRETS_STEP_TAG,
                    "Secret Manager setup",
                    load_secrets_step,
                    fatal=True,
                    track_completion=False,
                )
            )
        elif tag == COMPLETION_STEP_TAG:
            steps.append(installer_step(tag, track_completion=False))
        else:
            steps.append(installer_step(tag))
    return steps


class ProvisioningSequencer:
    """Runs boot steps in order and collects a ``SequenceReport``."""

    def __init__(
        self,
        context: BootContext,
        steps: Optional[List[BootStep]] = None,
    ):
        self.context = context
        self.steps: List[BootStep] = list(steps) if steps is not None else []

    def add_step(self, step: BootStep) -> None:
        if any(existing.tag == step.tag for existing in self.steps):
            raise ValueError(f"Step with tag '{step.tag}' already added")
        self.steps.append(step)
        self.context.logger.debug(f"Step '{step.tag}' added to the sequence.")

    @property
    def tags(self) -> List[str]:
        return [step.tag for step in self.steps]

    def run(
        self,
        only: Optional[Iterable[str]] = None,
        force: bool = False,
    ) -> SequenceReport:
        """
        Executes the steps in sequence.

        Args:
            only: If given, run just these step tags; the rest are reported as skipped.
            force: Re-run steps already marked as completed.

        Raises:
            ValueError: If ``only`` names a tag that is not in the sequence.
        """
        app_settings = self.context.app_settings
        logger_to_use = self.context.logger
        symbols = get_symbols(app_settings)

        selected = set(only) if only else None
        if selected is not None:
            unknown = sorted(selected - set(self.tags))
            if unknown:
                raise ValueError(f"Unknown step tag(s): {', '.join(unknown)}")

        report = SequenceReport()
        for index, step in enumerate(self.steps, start=1):
            if selected is not None and step.tag not in selected:
                report.outcomes.append(
                    StepOutcome(
                        tag=step.tag,
                        description=step.description,
                        status=StepStatus.SKIPPED,
                        fatal=step.fatal,
                        detail="not selected",
                    )
                )
                continue

            log_server_boot(
                f"Stage {index}/{len(self.steps)}: {step.tag}",
                "debug",
                logger_to_use,
                app_settings,
            )
            outcome = execute_step(step, self.context, force=force)
            report.outcomes.append(outcome)

            if outcome.status == StepStatus.FAILED:
                if step.fatal:
                    log_server_boot(
                        f"{symbols.get('critical', '🔥')} Fatal step '{step.tag}' failed. Halting boot sequence.",
                        "critical",
                        logger_to_use,
                        app_settings,
                    )
                    report.halted = True
                    break
                log_server_boot(
                    f"{symbols.get('warning', '!')} Step '{step.tag}' failed. Continuing with the next step.",
                    "warning",
                    logger_to_use,
                    app_settings,
                )

        self.log_summary(report)
        return report

    def log_summary(self, report: SequenceReport) -> None:
        app_settings = self.context.app_settings
        logger_to_use = self.context.logger
        symbols = get_symbols(app_settings)

        log_server_boot("Boot sequence summary:", "info", logger_to_use, app_settings)
        for outcome in report.outcomes:
            log_server_boot(
                f"   {outcome.tag}: {outcome.status.value}"
                + (f" ({outcome.detail})" if outcome.detail else ""),
                "info",
                logger_to_use,
                app_settings,
            )
        if report.failed:
            log_server_boot(
                f"{symbols.get('warning', '!')} Failed steps: {', '.join(o.tag for o in report.failed)}",
                "warning",
                logger_to_use,
                app_settings,
            )
        else:
            log_server_boot(
                f"{symbols.get('success', '✅')} All selected steps succeeded.",
                "success",
                logger_to_use,
                app_settings,
            )
