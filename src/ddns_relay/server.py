"""
FastAPI server for DDNS Relay.

This module provides the HTTP surface. Every GET request is dispatched on
the shape of its query string:

- `?stats`                       -> update cache statistics
- `?info=<zoneId>+<recordId>`    -> cached-value presence per address family
- `?zone=&email=&key=&name=`     -> DDNS update flow
- anything else                  -> the caller's IP as text/plain
"""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import BackgroundTasks, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette import status as st_status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ddns_relay import __version__
from ddns_relay.config import Config, load_config, parse_args
from ddns_relay.context import AppContext, build_context
from ddns_relay.errors import DDNSError, InvalidParametersError
from ddns_relay.models import DDNS_PARAM_NAMES, ApiResponse, RecordFamily

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from typing import Final

    from ddns_relay.config import ServerConfig


logger = logging.getLogger(__name__)

# Global config (set by the CLI before the app factory runs)
_config: Config | None = None

# Value reported when the caller's IP cannot be determined
UNKNOWN_IP: Final[str] = "unknown"

# "<zoneId>+<recordId>"; a URL "+" arrives as a space
_INFO_SEPARATOR: Final[re.Pattern[str]] = re.compile(r"[ +]")


def set_preloaded_config(config: Config) -> None:
    """
    Inject a pre-loaded configuration into the server module.

    This allows the CLI entry point to pass the parsed configuration to the
    app factory, avoiding the need to re-parse command-line arguments when
    uvicorn builds the application.

    Parameters
    ----------
    config : Config
        The configuration object to set.
    """
    global _config  # noqa: PLW0603
    _config = config


def get_context(request: Request) -> AppContext:
    """Get the application context attached to the request's app."""
    return request.app.state.context


def get_client_ip(request: Request, config: ServerConfig) -> str:
    """
    Determine the caller's IP address.

    Lookup order: the configured client IP header, then the first
    `X-Forwarded-For` entry (if trusted), then the socket peer.

    Parameters
    ----------
    request : Request
        The incoming request.
    config : ServerConfig
        Server configuration.

    Returns
    -------
    str
        The caller's IP, or "unknown" if it cannot be determined.
    """
    if config.client_ip_header:
        header_ip = request.headers.get(config.client_ip_header, "").strip()
        if header_ip:
            return header_ip

    if config.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",", 1)[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_IP


def parse_info_value(value: str) -> tuple[str, str]:
    """
    Parse the `info` query value.

    Parameters
    ----------
    value : str
        The value in format `<zoneId>+<recordId>` (or with a space).

    Returns
    -------
    tuple[str, str]
        A tuple of `(zone_id, record_id)`.

    Raises
    ------
    InvalidParametersError
        If the value does not contain exactly two non-empty parts.
    """
    parts = _INFO_SEPARATOR.split(value.strip())
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        msg = "The info parameter must be '<zoneId>+<recordId>'"
        raise InvalidParametersError(msg)
    return parts[0], parts[1]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    context: AppContext = app.state.context
    config = context.config

    logger.info(
        'DDNS Relay starting on "%s:%d" (provider: "%s", cache: %d entries, ttl %ds).',
        config.server.host,
        config.server.port,
        context.provider.name,
        config.cache.max_entries,
        config.cache.ttl,
    )

    yield

    stats = context.cache.stats()
    logger.info(
        "DDNS Relay shutting down (tracked=%d hits=%d misses=%d).",
        stats.tracked_keys,
        stats.hits,
        stats.misses,
    )


async def ddns_error_handler(_request: Request, exc: DDNSError) -> Response:
    """
    Handle DDNS errors with the JSON response envelope.

    The provider's error payload, if any, is passed through under `details`.
    """
    body = ApiResponse.failure(exc.code, exc.message, exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
    )


async def http_exception_handler(
    _request: Request,
    exc: StarletteHTTPException,
) -> Response:
    """
    Handle HTTP exceptions with the JSON response envelope.

    Convert Starlette's default {"detail": "..."} format (e.g., 405 for
    non-GET methods) to {"success": false, "error": "http_error", ...}.
    """
    body = ApiResponse.failure("http_error", str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=exc.headers,
    )


async def stats(request: Request, value: str) -> Response:
    """
    Report update cache statistics.

    `?stats=reset` reports the current snapshot, then zeroes the counters.
    """
    cache = get_context(request).cache
    snapshot = cache.stats()
    if value == "reset":
        cache.reset()
        logger.info(
            "[stats] Counters reset (hits=%d misses=%d).",
            snapshot.hits,
            snapshot.misses,
        )
    return JSONResponse(content={"sets": snapshot.tracked_keys, "ratio": snapshot.ratio})


async def info(request: Request, value: str) -> Response:
    """Report whether a cached IP exists for a record, per address family."""
    zone, record_id = parse_info_value(value)
    cache = get_context(request).cache

    cached: dict[str, bool] = {}
    for family in RecordFamily:
        cached[family.value] = await cache.peek(cache.key(zone, record_id, family)) is not None

    return JSONResponse(content={"zone": zone, "record_id": record_id, "cached": cached})


async def dispatch(
    request: Request,
    background_tasks: BackgroundTasks,
    full_path: str,
) -> Response:
    """
    Route a GET request on the shape of its query string.

    Any path is accepted; only the query string selects the endpoint.
    """
    context = get_context(request)
    query = request.query_params

    if "stats" in query:
        return await stats(request, query["stats"])
    if "info" in query:
        return await info(request, query["info"])

    client_ip = get_client_ip(request, context.config.server)

    if any(name in query for name in DDNS_PARAM_NAMES):
        # Cache write-backs are registered here and run after the response
        outcome = await context.engine.handle(
            query,
            client_ip,
            background_tasks.add_task,
        )
        return JSONResponse(
            content=ApiResponse.from_outcome(outcome).model_dump(exclude_none=True),
            status_code=st_status.HTTP_200_OK,
        )

    logger.debug("[echo] /%s -> %s", full_path, client_ip)
    return PlainTextResponse(client_ip)


async def health() -> Response:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"})


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    context : AppContext | None, optional
        The application context. If None, one is built from the preloaded
        configuration (or `config.toml` when running via uvicorn directly).

    Returns
    -------
    FastAPI
        The application.
    """
    if context is None:
        config = _config if _config is not None else load_config(parse_args([]))
        context = build_context(config)

    app = FastAPI(
        title="DDNS Relay",
        description="IP echo and DDNS update service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_exception_handler(DDNSError, ddns_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        StarletteHTTPException,
        http_exception_handler,  # type: ignore[arg-type]
    )

    # Registered before the catch-all route so it takes precedence
    if context.config.health.enabled:
        app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route("/{full_path:path}", dispatch, methods=["GET"])

    return app
