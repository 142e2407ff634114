"""Rich console logging plus an append-only, secret-free log file."""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from rich.logging import RichHandler

from debian_tweaks.ui import console

LOGGER_NAME = "debian_tweaks"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MASK = "****"
SECRET_PATTERNS = [
    re.compile(r"(?i)(authorization:\s*(?:bearer|token)\s+)\S+"),
    re.compile(r"(?i)\b((?:api[_-]?)?(?:token|password|secret|key)=)[^\s&]+"),
]


class RedactingFilter(logging.Filter):
    """Mask known secret values and token-like assignments in log records."""

    def __init__(self, secrets: Iterable[Optional[str]] = ()):
        super().__init__()
        self.secrets: List[str] = [s for s in secrets if s]

    def redact(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, MASK)
        for pattern in SECRET_PATTERNS:
            text = pattern.sub(lambda m: f"{m.group(1)}{MASK}", text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def setup_logger(
    log_file: Union[str, Path],
    debug: bool = False,
    secrets: Iterable[Optional[str]] = (),
) -> logging.Logger:
    """
    Configure the package logger with Rich console output and a persistent log file.

    The file is opened in append mode so every run adds to the same log.

    Args:
        log_file: Path to the log file
        debug: Log debug records to the console and the file
        secrets: Values that must never reach the console or the file

    Returns:
        Configured logger instance
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    redactor = RedactingFilter(secrets)

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=False,
    )
    rich_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    rich_handler.addFilter(redactor)
    logger.addHandler(rich_handler)

    try:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        file_handler.addFilter(redactor)
        logger.addHandler(file_handler)
        os.chmod(str(log_file), 0o600)
    except OSError as e:
        logger.warning(f"Could not set up file logging to {log_file}: {e}")

    return logger

