"""
Logging Configuration Module.

Central logging setup for the HiveLang runtime server and any host that embeds
the runtime.

Library modules only ever call ``logging.getLogger(__name__)``; whoever owns
the process calls ``setup_logging()`` once at startup. Capability ``log`` and
``warn`` output goes to the ``hivelang_runtime.capability`` logger.

Every handler installed here carries a ``RedactingFilter``: URLs lose their
query string and bearer-style tokens are masked before a record is written,
so credentials passed to third-party APIs never reach the log output.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from hivelang_runtime.core.config import settings

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

FORMATS = {
    "simple": SIMPLE_FORMAT,
    "detailed": DETAILED_FORMAT,
    "json": JSON_FORMAT,
}

LOG_FILE_NAME = "hivelang_runtime.log"

# Per-logger levels applied on every setup
MODULE_LOG_LEVELS = {
    "hivelang_runtime.language": "INFO",
    "hivelang_runtime.engine": "INFO",
    "hivelang_runtime.sandbox": "INFO",
    "hivelang_runtime.runtime": "DEBUG",
    "hivelang_runtime.capability": "INFO",
    "hivelang_runtime.server": "INFO",
    "hivelang_runtime.server.api": "DEBUG",
    # Third-party libraries (reduce noise)
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "asyncio": "WARNING",
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
}

_URL_QUERY = re.compile(r"(https?://[^\s?#\"']+)[?#][^\s\"']*")
_BEARER = re.compile(r"\b(Bearer|Basic)\s+[A-Za-z0-9._~+/=-]{8,}", re.IGNORECASE)


class RedactingFilter(logging.Filter):
    """Strip URL query strings and mask bearer tokens in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _BEARER.sub(lambda m: f"{m.group(1)} ***", _URL_QUERY.sub(r"\1", message))
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def resolve_format(log_format: Optional[str]) -> str:
    """Return the format string for ``simple``, ``detailed`` or ``json`` (default ``detailed``)."""
    return FORMATS.get((log_format or settings.log.format).lower(), DETAILED_FORMAT)


def _install(root_logger: logging.Logger, handler: logging.Handler, level: Union[int, str], fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RedactingFilter())
    root_logger.addHandler(handler)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = False,
    log_dir: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Defaults come from ``settings.log`` (``HIVELANG_LOG_*``). Calling this again
    replaces the handlers installed by the previous call.

    Args:
        log_level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Line format (simple, detailed, json)
        enable_file: Also write DEBUG and above to ``<log_dir>/hivelang_runtime.log``
        log_dir: Directory for the log file
    """
    config = settings.log
    level = (log_level or config.level).upper()
    fmt = resolve_format(log_format)

    root_logger = logging.getLogger()
    # Handlers filter by level; the root passes everything through
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    _install(root_logger, logging.StreamHandler(), level, fmt)

    file_logging = enable_file or config.to_file
    if file_logging:
        directory = Path(log_dir or config.file_dir)
        directory.mkdir(parents=True, exist_ok=True)
        _install(root_logger, logging.FileHandler(directory / LOG_FILE_NAME), logging.DEBUG, fmt)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info(f"Logging configured: level={level}, format={log_format or config.format}, file_logging={file_logging}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)
