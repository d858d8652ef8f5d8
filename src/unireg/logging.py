"""Logging setup shared by the API, the outbox worker and the CLI.

Everything logs below the ``unireg`` logger. ``setup_logging`` attaches a
rotating file handler (and optionally the console), both behind a filter that
scrubs mail API keys and bearer tokens from the rendered message.
"""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "unireg"

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "unireg.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that are chatty at INFO (httpx logs every mail API request)
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")

_SECRET_PATTERNS = [
    (re.compile(r"re_[a-zA-Z0-9_]{16,}"), "[MAIL_API_KEY]"),
    (re.compile(r"Bearer [a-zA-Z0-9._-]+"), "Bearer [REDACTED]"),
    (re.compile(r"token=[a-zA-Z0-9._-]+"), "token=[REDACTED]"),
    (re.compile(r"api_key=[a-zA-Z0-9._-]+"), "api_key=[REDACTED]"),
]


class RedactingFilter(logging.Filter):
    """Apply ``sanitize_for_log`` to every record passing a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = sanitize_for_log(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = ()
        return True


def _configure_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(RedactingFilter())
    return handler


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """Configure the ``unireg`` logger.

    Calling it again replaces the previous handlers.

    Args:
        log_dir: Directory for the log file. Falls back to UNIREG_LOG_DIR,
            then ``logs``. Created if missing.
        log_file: File name inside ``log_dir``.
        max_bytes: Size at which the file is rotated.
        backup_count: Rotated files to keep.
        level: Level name. Falls back to UNIREG_LOG_LEVEL, then INFO.
        console: Also log to stderr.

    Returns:
        The ``unireg`` logger.
    """
    directory = Path(log_dir or os.environ.get("UNIREG_LOG_DIR", DEFAULT_LOG_DIR))
    directory.mkdir(parents=True, exist_ok=True)
    level_name = (level or os.environ.get("UNIREG_LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    log_path = directory / log_file
    logger.addHandler(
        _configure_handler(
            RotatingFileHandler(
                log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            ),
            numeric_level,
        )
    )
    if console:
        logger.addHandler(_configure_handler(logging.StreamHandler(), numeric_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logger.info("UniReg logging initialized (level=%s, file=%s)", level_name, log_path)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, e.g. ``get_logger("notifier")`` -> ``unireg.notifier``."""
    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def mask_email(address: str) -> str:
    """Mask the local part of an email address for logging.

    Args:
        address: Email address, e.g. "jane.doe@example.edu".

    Returns:
        Masked address, e.g. "j***@example.edu". Strings without "@" are
        returned with everything after the first character masked.
    """
    local, sep, domain = address.partition("@")
    if not local:
        return address
    return f"{local[0]}***{sep}{domain}"


def sanitize_for_log(text: str) -> str:
    """Replace mail API keys, bearer tokens and secret query params in ``text``."""
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text
