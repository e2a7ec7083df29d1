"""
Logging setup for DDNS Relay.

Callers authenticate with their own provider email and API key, which
travel in the query string of every update request. Every handler installed
here (the relay's own and uvicorn's) runs records through `SensitiveFilter`
so those values never reach a console or a log file in full.
"""

from __future__ import annotations

import copy
import logging
import logging.handlers
import re
import sys
from typing import TYPE_CHECKING

from uvicorn.config import LOGGING_CONFIG

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Any, Final

    from ddns_relay.config import LoggingConfig


# (pattern, replacement); group 1 is kept, group 2 is the visible head of
# the secret, the rest is replaced with asterisks
SENSITIVE_PATTERNS: Final[list[tuple[re.Pattern[str], str]]] = [
    # Outbound X-Auth-Key header
    (
        re.compile(r"(X-Auth-Key[\"']?\s*[:=]\s*[\"']?)([^\s\"',}]{0,6})([^\s\"',}]*)", re.IGNORECASE),
        r"\1\2******",
    ),
    # "key": "..." in JSON bodies
    (
        re.compile(r'("key"\s*:\s*")([^"]{0,6})([^"]*)"', re.IGNORECASE),
        r'\1\2******"',
    ),
    # key= in request lines; "cache_key=" and "X-Auth-Key=" are not matched
    (
        re.compile(r"((?<![\w-])key=)([^\s,\"&']{0,6})([^\s,\"&']*)", re.IGNORECASE),
        r"\1\2******",
    ),
    # email= keeps two characters of the local part and the domain
    (
        re.compile(r"(\bemail=)([^\s,\"&'@%]{0,2})([^\s,\"&'@%]*)", re.IGNORECASE),
        r"\1\2***",
    ),
]

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Logger shared by every module of the package
PACKAGE_LOGGER: Final[str] = "ddns_relay"


def mask_sensitive(value: str) -> str:
    """
    Mask provider credentials in a string.

    Parameters
    ----------
    value : str
        Text that may contain an API key or email.

    Returns
    -------
    str
        The text with every match of `SENSITIVE_PATTERNS` masked.
    """
    for pattern, replacement in SENSITIVE_PATTERNS:
        value = pattern.sub(replacement, value)
    return value


def _mask_arg(value: Any) -> Any:
    return mask_sensitive(value) if isinstance(value, str) else value


class SensitiveFilter(logging.Filter):
    """
    Mask provider credentials in log records.

    The message, its %-format arguments and the request fields that uvicorn's
    formatters attach to the record are all rewritten. Records are never
    dropped.
    """

    # Record attributes set by uvicorn or custom formatters
    RECORD_FIELDS: tuple[str, ...] = (
        "request_line",
        "full_path",
        "path",
        "url",
        "headers",
        "scope",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite `record` in place and keep it."""
        if record.msg:
            record.msg = mask_sensitive(str(record.msg))

        if isinstance(record.args, dict):
            record.args = {k: _mask_arg(v) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(_mask_arg(arg) for arg in record.args)

        for field in self.RECORD_FIELDS:
            value = record.__dict__.get(field)
            if isinstance(value, str):
                record.__dict__[field] = mask_sensitive(value)

        return True


def _prepare_log_file(config: LoggingConfig) -> Path:
    """
    Create the log file and its directory.

    Exits the process if the file cannot be created, since the operator asked
    for file logging explicitly.
    """
    log_path = config.file_path_as_path
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.touch(exist_ok=True)
    except OSError as e:
        logging.getLogger(PACKAGE_LOGGER).critical(
            'Failed to create log file "%s": %s', log_path, e,
        )
        sys.exit(1)
    return log_path


def _add_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SensitiveFilter())
    logger.addHandler(handler)


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the package logger.

    Logs go to the console and, when enabled, to a `WatchedFileHandler` so
    external log rotation is picked up. The package logger does not propagate
    to the root logger.

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    logger.handlers.clear()

    _add_handler(logger, logging.StreamHandler())

    if config.file_enabled:
        log_path = _prepare_log_file(config)
        _add_handler(
            logger,
            logging.handlers.WatchedFileHandler(str(log_path), encoding="utf-8"),
        )
        logger.info('File logging enabled: "%s".', log_path)

    logger.propagate = False


def build_uvicorn_log_config(config: LoggingConfig) -> dict:
    """
    Build the `log_config` dictionary passed to uvicorn.

    Starts from uvicorn's defaults (colored console output), attaches
    `SensitiveFilter` to its handlers and, when file logging is enabled, adds
    a file handler to the "uvicorn" and "uvicorn.access" loggers.

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration.

    Returns
    -------
    dict
        A `logging.config.dictConfig` schema for uvicorn.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)

    log_config.setdefault("filters", {})["sensitive"] = {
        "()": f"{__name__}.SensitiveFilter",
    }
    for handler_name in ("default", "access"):
        log_config["handlers"][handler_name].setdefault("filters", []).append("sensitive")

    if config.file_enabled:
        log_path = _prepare_log_file(config)

        log_config.setdefault("formatters", {})["file"] = {
            "format": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
        }
        log_config["handlers"]["file"] = {
            "class": "logging.handlers.WatchedFileHandler",
            "filename": str(log_path),
            "encoding": "utf-8",
            "formatter": "file",
            "filters": ["sensitive"],
        }
        # "uvicorn.error" propagates to "uvicorn"
        for logger_name in ("uvicorn", "uvicorn.access"):
            log_config["loggers"][logger_name]["handlers"].append("file")

    return log_config
