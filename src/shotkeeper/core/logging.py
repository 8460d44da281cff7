"""
Logging infrastructure for Shotkeeper.

Console output is human-readable (optionally colored); files get a detailed
rotating text log plus a JSON-lines log for tooling.
"""

import json
import logging
import sys
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from shotkeeper.core.paths import LOG_DIR

CONSOLE_FORMAT = "%(asctime)s [%(levelname)8s] %(name)s: %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

MAX_LOG_SIZE_MB = 10
MAX_LOG_FILES = 5

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that renders each record as one JSON object."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _STANDARD_RECORD_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_data["extra"] = extra_fields

        return json.dumps(log_data)


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter that colors the level name on TTY consoles."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        original_levelname = record.levelname
        color = self.COLORS.get(record.levelno, "")
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_SIZE_MB * 1024 * 1024,
        backupCount=MAX_LOG_FILES,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    console_level: int | str = DEFAULT_CONSOLE_LEVEL,
    file_level: int | str = DEFAULT_FILE_LEVEL,
    log_dir: Path | str | None = None,
    log_file: str | None = "shotkeeper.log",
    structured_file: str | None = "shotkeeper.jsonl",
    use_colors: bool = True,
) -> logging.Logger:
    """
    Set up logging for Shotkeeper.

    Configures:
    - Console handler with human-readable format
    - Rotating file handler with detailed format
    - Optional JSON-lines file for structured logging

    Args:
        console_level: Log level for console output
        file_level: Log level for file output
        log_dir: Directory for log files (defaults to DATA_ROOT/logs)
        log_file: Name of the main log file (None to disable)
        structured_file: Name of the JSON log file (None to disable)
        use_colors: Use colored output in console

    Returns:
        Root logger instance
    """
    if isinstance(console_level, str):
        console_level = getattr(logging, console_level.upper())
    if isinstance(file_level, str):
        file_level = getattr(logging, file_level.upper())

    log_dir = Path(log_dir) if log_dir is not None else LOG_DIR

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        ColoredConsoleFormatter(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT, use_colors=use_colors)
    )
    root_logger.addHandler(console_handler)

    if log_file or structured_file:
        log_dir.mkdir(parents=True, exist_ok=True)

    if log_file:
        root_logger.addHandler(
            _rotating_handler(
                log_dir / log_file,
                file_level,
                logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATE_FORMAT),
            )
        )

    if structured_file:
        root_logger.addHandler(
            _rotating_handler(log_dir / structured_file, file_level, StructuredLogFormatter())
        )

    logging.captureWarnings(True)

    root_logger.debug(
        f"Logging initialized (console: {logging.getLevelName(console_level)}, "
        f"file: {logging.getLevelName(file_level)})"
    )

    return root_logger


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    level: int = logging.ERROR,
    **extra: Any,
) -> None:
    """
    Log an exception with its traceback and extra context fields.

    Args:
        logger: Logger to use
        message: Log message
        exc: Exception to log
        level: Log level
        **extra: Extra fields to include
    """
    logger.log(
        level,
        f"{message}: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra=extra,
    )


class OperationTimer:
    """
    Context manager that logs how long an operation took.

    Usage:
        with OperationTimer(logger, "classify", items=len(items)):
            ...
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.DEBUG,
        **extra: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.extra = extra
        self.start_time: float | None = None
        self.duration: float | None = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        self.duration = time.perf_counter() - self.start_time
        extra = {"operation": self.operation, "duration_seconds": self.duration, **self.extra}

        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed after {self.duration:.2f}s",
                exc_info=(exc_type, exc_val, exc_tb),
                extra=extra,
            )
            return

        if self.duration < 1:
            duration_str = f"{self.duration * 1000:.1f}ms"
        else:
            duration_str = f"{self.duration:.2f}s"
        self.logger.log(self.level, f"{self.operation} completed in {duration_str}", extra=extra)
