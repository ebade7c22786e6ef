# common/logging_config.py
# -*- coding: utf-8 -*-
"""
Centralized logging configuration for the server boot sequence.

Every boot appends to a single log file. Console output is human readable;
the file can carry either the same plain format or JSON records for
shipping to a log collector. The logging lifecycle is scoped with
``BootLogSession`` so handlers are flushed and closed when the boot ends.
"""

import getpass
import json
import logging
import os
import socket
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes present on every LogRecord; anything else came in via ``extra``.
_RESERVED_RECORD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
        "message",
        "asctime",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formats log records as JSON with a consistent structure: timestamp
    (ISO format, UTC), level, service, logger, message, source location,
    hostname and any ``extra`` fields.
    """

    def __init__(self, service_name: str = "server-boot"):
        super().__init__()
        self.service_name = service_name
        self.hostname = socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
            "hostname": self.hostname,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(
    service_name: str,
    log_level: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = False,
    log_file_path: Optional[str] = None,
    json_file_format: bool = False,
) -> logging.Logger:
    """
    Set up logging for the boot sequence.

    Args:
        service_name: Name of the service logger (e.g., "server-boot").
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Falls back to the LOG_LEVEL environment variable, then INFO.
        enable_console: Whether to enable console logging.
        enable_file: Whether to enable file logging.
        log_file_path: Path to the log file; opened in append mode.
        json_file_format: Write JSON records to the log file.

    Returns:
        Configured logger instance.
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    plain_formatter = logging.Formatter(PLAIN_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(plain_formatter)
        root_logger.addHandler(console_handler)

    file_enabled = False
    if enable_file and log_file_path:
        try:
            log_dir = os.path.dirname(log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(
                log_file_path, mode="a", encoding="utf-8"
            )
        except OSError as e:
            root_logger.warning(
                f"Could not open log file {log_file_path}: {e}. Logging to console only."
            )
        else:
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(
                JSONFormatter(service_name)
                if json_file_format
                else plain_formatter
            )
            root_logger.addHandler(file_handler)
            file_enabled = True

    logger = logging.getLogger(service_name)
    logger.debug(
        "Logging initialized",
        extra={
            "log_level": log_level,
            "console_enabled": enable_console,
            "file_enabled": file_enabled,
        },
    )
    return logger


def shutdown_logging() -> None:
    """Flush and close every handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
        finally:
            handler.close()
            root_logger.removeHandler(handler)


class BootLogSession:
    """
    Context manager owning the logging lifecycle of one boot.

    On enter it configures handlers and writes the starting banner (time,
    user, hostname). On exit it writes the finishing banner and flushes and
    closes every handler.

    Usage:
        with BootLogSession("/var/log/server-boot.log") as logger:
            logger.info("...")
    """

    def __init__(
        self,
        log_file_path: Optional[str],
        service_name: str = "server-boot",
        log_level: Optional[str] = None,
        enable_console: bool = True,
        json_file_format: bool = False,
    ):
        self.log_file_path = log_file_path
        self.service_name = service_name
        self.log_level = log_level
        self.enable_console = enable_console
        self.json_file_format = json_file_format
        self.logger: Optional[logging.Logger] = None

    def __enter__(self) -> logging.Logger:
        self.logger = setup_logging(
            self.service_name,
            log_level=self.log_level,
            enable_console=self.enable_console,
            enable_file=bool(self.log_file_path),
            log_file_path=self.log_file_path,
            json_file_format=self.json_file_format,
        )
        for line in self.banner_lines("STARTING"):
            self.logger.info(line)
        return self.logger

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.logger is not None:
            if exc is not None and not isinstance(exc, SystemExit):
                self.logger.critical(
                    f"Boot sequence aborted: {exc}",
                    exc_info=(exc_type, exc, tb),
                )
            self.logger.info(
                f"=== SERVER BOOT SCRIPT FINISHED at {_now()} ==="
            )
        shutdown_logging()

    @staticmethod
    def banner_lines(stage: str) -> List[str]:
        return [
            f"=== SERVER BOOT SCRIPT {stage} at {_now()} ===",
            f"Running as user: {_current_user()}",
            f"Hostname: {socket.gethostname()}",
        ]


def _now() -> str:
    return datetime.now().astimezone().strftime("%a %b %d %H:%M:%S %Z %Y")


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return str(os.geteuid())
