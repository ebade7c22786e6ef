# provision/main.py
# -*- coding: utf-8 -*-
"""
Entry point for the server boot sequence.

With no arguments every step runs with the built-in defaults. Exit codes:
0 when every step succeeded, 1 when a non-fatal step failed, 2 when a fatal
step failed or the configuration was invalid.
"""

import argparse
import logging
import sys
from typing import List, Optional

from common.logging_config import BootLogSession, setup_logging
from provision.config_loader import ConfigurationError, load_app_settings
from provision.sequencer import (
    EXIT_FATAL,
    EXIT_OK,
    ProvisioningSequencer,
    build_default_steps,
)
from provision.state_manager import initialize_state_system
from provision.step_executor import BootContext

SERVICE_NAME = "server-boot"


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Provision a freshly created cloud VM: timezone, secrets, swap, Docker and shell setup.",
    )
    parser.add_argument(
        "-c", "--config", default=None, help="Path to a YAML configuration file"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-run steps even if already marked as completed",
    )
    parser.add_argument(
        "--only",
        action="append",
        metavar="TAG",
        default=None,
        help="Run only this step (repeatable)",
    )
    parser.add_argument(
        "--list-steps",
        action="store_true",
        help="List the boot steps in order and exit",
    )
    parser.add_argument("--timezone", default=None, help="Override the timezone")
    parser.add_argument(
        "--project-id", default=None, help="Project holding the boot secrets"
    )
    parser.add_argument("--log-file", default=None, help="Log file to append to")
    parser.add_argument(
        "--allow-insecure-secret-fallbacks",
        action="store_true",
        default=None,
        help="DEV ONLY: use hardcoded fallback values for unavailable secrets",
    )
    return parser.parse_args(args)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_level = "DEBUG" if args.verbose else None

    if args.list_steps:
        for step in build_default_steps():
            flags = []
            if step.fatal:
                flags.append("fatal")
            if not step.track_completion:
                flags.append("every boot")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            print(f"{step.tag:<22} {step.description}{suffix}")
        return EXIT_OK

    bootstrap_logger = setup_logging(SERVICE_NAME, log_level=log_level)
    try:
        app_settings = load_app_settings(
            cli_args=args,
            config_file_path=args.config,
            current_logger=bootstrap_logger,
        )
    except ConfigurationError as e:
        bootstrap_logger.error(str(e))
        return EXIT_FATAL

    with BootLogSession(
        app_settings.log_file,
        service_name=SERVICE_NAME,
        log_level=log_level,
        json_file_format=app_settings.json_logs,
    ) as logger:
        context = BootContext(app_settings, logger)

        try:
            initialize_state_system(app_settings, logger)
        except Exception as e:
            logger.warning(
                f"State tracking unavailable, every step will run: {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )

        sequencer = ProvisioningSequencer(context, build_default_steps(logger))
        try:
            report = sequencer.run(only=args.only, force=args.force)
        except ValueError as e:
            logger.error(str(e))
            return EXIT_FATAL

        return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
