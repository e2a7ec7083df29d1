"""
Configuration management for DDNS Relay.

This module handles loading and validating configuration from TOML files
and command-line arguments. Configuration priority (high to low):
1. Command-line arguments
2. Configuration file
3. Default values
"""

from __future__ import annotations

import argparse
import copy
import logging
import sys
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from ddns_relay.cache.manager import (
    DEFAULT_KEY_PREFIX,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_TTL,
)
from ddns_relay.logging_config import DATE_FORMAT, LOG_FORMAT
from ddns_relay.providers.cloudflare import CF_API_BASE, HTTP_TIMEOUT

if TYPE_CHECKING:
    from typing import Any

# Console-only logger for messages emitted before setup_logging() runs
logger_basic = logging.getLogger(__name__)
logger_basic.setLevel(logging.DEBUG)
handler = logging.StreamHandler()
formatter = logging.Formatter(
    fmt=LOG_FORMAT,
    datefmt=DATE_FORMAT,
)
handler.setFormatter(formatter)
logger_basic.addHandler(handler)
logger_basic.propagate = False


# argparse destination -> (config section, field)
CLI_OVERRIDES: dict[str, tuple[str, str]] = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "client_ip_header": ("server", "client_ip_header"),
    "cache_max_entries": ("cache", "max_entries"),
    "cache_ttl": ("cache", "ttl"),
    "provider_timeout": ("provider", "timeout"),
    "log_level": ("logging", "level"),
    "log_file_enabled": ("logging", "file_enabled"),
    "log_file_path": ("logging", "file_path"),
    "health_enabled": ("health", "enabled"),
}


class ConfigValidationError(Exception):
    """
    Exception raised when configuration validation fails.

    This exception is raised when the TOML configuration contains
    invalid types or values.

    Attributes
    ----------
    message : str
        Human-readable error message describing the validation failures.
    config_path : Path | None
        Path to the configuration file that failed validation.
    """

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        """
        Initialize ConfigValidationError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        config_path : Path | None, optional
            Path to the configuration file.
        """
        self.config_path = config_path
        super().__init__(message)


# Configuration sections; each maps to a [table] in the TOML file


class ServerConfig(BaseModel):
    """
    Server configuration.

    Attributes
    ----------
    host : str
        Host address to bind to.
    port : int
        Port number to listen on.
    client_ip_header : str
        Request header carrying the caller's IP (set by the edge proxy).
        An empty string disables the header lookup.
    trust_forwarded_for : bool
        Whether to fall back to the first `X-Forwarded-For` entry.
    """

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 38080
    client_ip_header: str = "CF-Connecting-IP"
    trust_forwarded_for: bool = False


class CacheConfig(BaseModel):
    """
    Update cache configuration.

    Attributes
    ----------
    max_entries : int
        Maximum number of records tracked by the LRU.
    ttl : int
        Lifetime of a cached IP in seconds.
    key_prefix : str
        Namespace prefix for cache keys.
    """

    max_entries: int = Field(default=DEFAULT_MAX_ENTRIES, ge=1)
    ttl: int = Field(default=DEFAULT_TTL, ge=1)
    key_prefix: str = DEFAULT_KEY_PREFIX


class ProviderConfig(BaseModel):
    """
    DNS provider configuration.

    Attributes
    ----------
    api_base : str
        CloudFlare API base URL.
    timeout : float
        HTTP timeout in seconds.
    """

    api_base: str = CF_API_BASE
    timeout: float = Field(default=HTTP_TIMEOUT, gt=0)


class LoggingConfig(BaseModel):
    """
    Logging configuration.

    Attributes
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    file_enabled : bool
        Whether to log to file.
    file_path : str
        Path to the log file.
    """

    level: str = "INFO"
    file_enabled: bool = False
    file_path: str = "/var/log/ddns-relay.log"

    @property
    def file_path_as_path(self) -> Path:
        """
        Get the log file path as a Path object.

        Returns
        -------
        Path
            The resolved log file path.
        """
        return Path(self.file_path)


class HealthConfig(BaseModel):
    """
    Health endpoint configuration.

    Attributes
    ----------
    enabled : bool
        Whether the /health endpoint is enabled.
    """

    enabled: bool = False


class Config(BaseModel):
    """
    Application configuration.

    Attributes
    ----------
    server : ServerConfig
        Server configuration.
    cache : CacheConfig
        Update cache configuration.
    provider : ProviderConfig
        DNS provider configuration.
    logging : LoggingConfig
        Logging configuration.
    health : HealthConfig
        Health endpoint configuration.
    """

    server: ServerConfig = ServerConfig()
    cache: CacheConfig = CacheConfig()
    provider: ProviderConfig = ProviderConfig()
    logging: LoggingConfig = LoggingConfig()
    health: HealthConfig = HealthConfig()


def _format_validation_errors(
    error: ValidationError,
    config_path: Path | None,
) -> str:
    """
    Format Pydantic validation errors into human-readable messages.

    Parameters
    ----------
    error : ValidationError
        Pydantic validation error.
    config_path : Path | None
        Path to the configuration file.

    Returns
    -------
    str
        Human-readable error message.
    """
    lines: list[str] = []

    if config_path:
        lines.append(f'Configuration error in "{config_path}":')
    else:
        lines.append("Configuration error:")

    for err in error.errors():
        # Build field path (e.g., "server.port")
        field_path = ".".join(str(loc) for loc in err["loc"])

        error_type = err["type"]
        error_input = err["input"]
        input_type = type(error_input).__name__

        value_repr = (
            f'"{error_input}"' if isinstance(error_input, str) else repr(error_input)
        )

        expected_type = _get_expected_type(error_type)
        lines.append(
            f"  [{field_path}]: Expected {expected_type}, got {input_type} (value: {value_repr}). {err['msg']}.",
        )

    return "\n".join(lines)


def _get_expected_type(error_type: str) -> str:
    """
    Get human-readable expected type from Pydantic error type.

    Parameters
    ----------
    error_type : str
        Pydantic error type string.

    Returns
    -------
    str
        Human-readable type name.
    """
    type_mapping = {
        "int_type": "int",
        "int_parsing": "int",
        "float_type": "float",
        "float_parsing": "float",
        "bool_type": "bool",
        "bool_parsing": "bool",
        "string_type": "str",
        "greater_than": "positive number",
        "greater_than_equal": "positive number",
    }
    return type_mapping.get(error_type, error_type)


def validate_config_dict(
    data: dict[str, Any],
    config_path: Path | None = None,
) -> None:
    """
    Validate configuration dictionary using Pydantic.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary to validate.
    config_path : Path | None, optional
        Path to the configuration file (for error messages).

    Raises
    ------
    ConfigValidationError
        If validation fails.
    """
    try:
        Config(**data)
    except ValidationError as e:
        msg = _format_validation_errors(e, config_path)
        raise ConfigValidationError(msg, config_path) from e


def load_config_from_file(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a TOML file.

    Parameters
    ----------
    config_path : Path
        Path to the configuration file.

    Returns
    -------
    dict[str, Any]
        Parsed configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    tomllib.TOMLDecodeError
        If the configuration file is not valid TOML.
    """
    with config_path.open("rb") as f:
        return tomllib.load(f)


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Parameters
    ----------
    base : dict[str, Any]
        Base configuration.
    override : dict[str, Any]
        Override configuration (takes precedence).

    Returns
    -------
    dict[str, Any]
        Merged configuration.
    """
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def dict_to_config(data: dict[str, Any]) -> Config:
    """
    Convert a dictionary to a Config object.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary.

    Returns
    -------
    Config
        Configuration object.
    """
    # "~" in the log path is expanded before validation
    if "logging" in data and "file_path" in data["logging"]:
        data = copy.deepcopy(data)
        data["logging"]["file_path"] = str(
            Path(data["logging"]["file_path"]).expanduser(),
        )

    return Config.model_validate(data)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="ddns-relay",
        description="DDNS Relay - IP echo and DDNS update service",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml)",
    )

    # Server arguments
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port number to listen on",
    )
    parser.add_argument(
        "--client-ip-header",
        type=str,
        dest="client_ip_header",
        default=None,
        help="Request header carrying the caller's IP",
    )

    # Cache arguments
    parser.add_argument(
        "--cache-max-entries",
        type=int,
        dest="cache_max_entries",
        default=None,
        help="Maximum number of records tracked by the update cache",
    )
    parser.add_argument(
        "--cache-ttl",
        type=int,
        dest="cache_ttl",
        default=None,
        help="Lifetime of a cached IP in seconds",
    )

    # Provider arguments
    parser.add_argument(
        "--provider-timeout",
        type=float,
        dest="provider_timeout",
        default=None,
        help="DNS provider HTTP timeout in seconds",
    )

    # Logging arguments
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level",
    )
    log_file_group = parser.add_mutually_exclusive_group()
    log_file_group.add_argument(
        "--log-file-enabled",
        action="store_true",
        dest="log_file_enabled",
        default=None,
        help="Enable logging to file",
    )
    log_file_group.add_argument(
        "--log-file-disabled",
        action="store_false",
        dest="log_file_enabled",
        default=None,
        help="Disable logging to file",
    )
    parser.add_argument(
        "--log-file-path",
        type=Path,
        dest="log_file_path",
        default=None,
        help="Path to the log file",
    )

    # Health endpoint arguments
    health_group = parser.add_mutually_exclusive_group()
    health_group.add_argument(
        "--health-enabled",
        action="store_true",
        dest="health_enabled",
        default=None,
        help='Enable "/health" endpoint',
    )
    health_group.add_argument(
        "--health-disabled",
        action="store_false",
        dest="health_enabled",
        default=None,
        help='Disable "/health" endpoint',
    )

    return parser.parse_args(args)


def load_config(args: argparse.Namespace | None = None) -> Config:
    """
    Load configuration from file and command-line arguments.

    Priority (high to low):
    1. Command-line arguments
    2. Configuration file
    3. Default values

    Parameters
    ----------
    args : argparse.Namespace | None, optional
        Parsed command-line arguments.

    Returns
    -------
    Config
        Loaded configuration.

    Raises
    ------
    ConfigValidationError
        If the merged configuration is invalid.
    """
    if args is None:
        args = parse_args()

    config_dict: dict[str, Any] = {}

    # An explicit --config must exist; ./config.toml is optional
    config_path = args.config
    if config_path is not None:
        config_path = config_path.expanduser()
    if config_path is None:
        default_config = Path("config.toml")
        if default_config.exists():
            config_path = default_config

    if config_path is not None:
        if config_path.exists():
            logger_basic.info('Loading configuration from "%s".', config_path)
            try:
                config_dict = load_config_from_file(config_path)
            except tomllib.TOMLDecodeError as e:
                logger_basic.critical('Failed to parse configuration file: "%s".', e)
                sys.exit(1)
        else:
            logger_basic.critical("Configuration file not found: %s", config_path)
            sys.exit(1)

    cli_overrides: dict[str, Any] = {}
    for dest, (section, field) in CLI_OVERRIDES.items():
        value = getattr(args, dest)
        if value is None:
            continue
        if isinstance(value, Path):
            value = str(value)
        cli_overrides.setdefault(section, {})[field] = value

    if cli_overrides:
        config_dict = merge_config(config_dict, cli_overrides)

    validate_config_dict(config_dict, config_path)

    return dict_to_config(config_dict)
