"""Logging configuration for the Personal Curator.

Provides centralized logging setup with Rich console formatting, optional
file logging, and a redaction filter that keeps API keys out of every
handler.

Example:
    >>> from curator.utils.logging import setup_logging, LogContext
    >>> setup_logging(level="DEBUG")
    >>> logger = logging.getLogger("curator.ai")
    >>> with LogContext("Emotion analysis", logger=logger):
    ...     run_emotion()
    ... # Logs: "Emotion analysis completed in 1.84s"
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# =============================================================================
# Constants
# =============================================================================

PACKAGE_NAME = "curator"

NOISY_LOGGERS = [
    "google",
    "google.auth",
    "google.genai",
    "google_genai",
    "urllib3",
    "httpx",
    "httpcore",
    "asyncio",
]

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console = Console(stderr=True)


# =============================================================================
# Secret Redaction
# =============================================================================


class RedactingFilter(logging.Filter):
    """Replace anything that looks like an API key or token with [REDACTED].

    Attached to the client logger and to every handler installed by
    ``setup_logging``.

    Example:
        >>> logger.addFilter(RedactingFilter())
        >>> logger.info("Using api_key=AIzaSy...")
        # Output: "Using api_key=[REDACTED]"
    """

    KEY_VALUE_PATTERNS = [
        re.compile(r'((?:api_key|key|token|secret)\s*[=:]\s*)["\']?[A-Za-z0-9_\-]{20,}["\']?', re.I),
        re.compile(r"(bearer\s+)[A-Za-z0-9_\-]{20,}", re.I),
    ]
    STANDALONE_PATTERNS = [
        re.compile(r"\bAIza[A-Za-z0-9_\-]{30,}\b"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self.redact(v) if isinstance(v, str) else v for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    self.redact(arg) if isinstance(arg, str) else arg for arg in record.args
                )
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        for pattern in cls.KEY_VALUE_PATTERNS:
            text = pattern.sub(r"\1[REDACTED]", text)
        for pattern in cls.STANDALONE_PATTERNS:
            text = pattern.sub("[REDACTED]", text)
        return text


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure logging for the curator package.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        quiet_third_party: Raise noisy third-party loggers to WARNING.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger(PACKAGE_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.handlers = []

    console_handler = RichHandler(
        console=_console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=numeric_level == logging.DEBUG,
        markup=False,
    )
    console_handler.setLevel(numeric_level)
    console_handler.addFilter(RedactingFilter())
    package_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        file_handler.addFilter(RedactingFilter())
        package_logger.addHandler(file_handler)

    if quiet_third_party:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    package_logger.propagate = False
    package_logger.debug(f"Logging configured: level={level}, file={log_file}")


# =============================================================================
# Log Context Manager
# =============================================================================


class LogContext:
    """Time an operation and log its start and completion.

    Attributes:
        message: Description of the operation.
        level: Log level for the start/completion messages.
        logger: Logger to write to.
        elapsed: Elapsed seconds, set on exit.
    """

    def __init__(
        self,
        message: str,
        level: int = logging.INFO,
        logger: logging.Logger | None = None,
    ) -> None:
        self.message = message
        self.level = level
        self.logger = logger or logging.getLogger(PACKAGE_NAME)
        self.elapsed: float = 0.0
        self._start_time: float = 0.0

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)

    def __enter__(self) -> "LogContext":
        self._start_time = time.perf_counter()
        self.logger.log(self.level, f"{self.message}...")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.elapsed = time.perf_counter() - self._start_time
        if exc_type is not None:
            self.logger.error(f"{self.message} failed after {self.elapsed:.2f}s: {exc_val}")
        else:
            self.logger.log(self.level, f"{self.message} completed in {self.elapsed:.2f}s")
