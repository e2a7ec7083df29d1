"""
Command-line entry point for DDNS Relay.

`ddns-relay [--config PATH] [overrides...]` loads the configuration, sets
up credential-masking logs and serves the relay with uvicorn.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

import uvicorn

from ddns_relay.config import ConfigValidationError, load_config, parse_args
from ddns_relay.logging_config import build_uvicorn_log_config, setup_logging
from ddns_relay.server import set_preloaded_config

if TYPE_CHECKING:
    from ddns_relay.config import Config

# Import string handed to uvicorn; the factory reads the preloaded config
APP_FACTORY = "ddns_relay.server:create_app"


def uvicorn_options(config: Config) -> dict[str, Any]:
    """
    Translate the relay configuration into `uvicorn.run` keyword arguments.

    Parameters
    ----------
    config : Config
        The loaded configuration.

    Returns
    -------
    dict[str, Any]
        Keyword arguments for `uvicorn.run`.
    """
    return {
        "factory": True,
        "host": config.server.host,
        "port": config.server.port,
        "log_level": config.logging.level.lower(),
        "access_log": True,
        "log_config": build_uvicorn_log_config(config.logging),
    }


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, load configuration and serve until interrupted."""
    try:
        config = load_config(parse_args(argv))
    except ConfigValidationError as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    setup_logging(config.logging)
    set_preloaded_config(config)
    uvicorn.run(APP_FACTORY, **uvicorn_options(config))


if __name__ == "__main__":
    main()
