"""
Process-wide application context.

Built once at startup and handed to the HTTP layer, so the cache, its
counters and the provider client are explicit objects rather than module
globals. Tests build a fresh context per test.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ddns_relay.cache.manager import UpdateCache
from ddns_relay.cache.store import MemoryTTLStore
from ddns_relay.engine import UpdateDecisionEngine
from ddns_relay.providers.cloudflare import CloudFlareProvider

if TYPE_CHECKING:
    from ddns_relay.cache.store import TTLStore
    from ddns_relay.config import Config
    from ddns_relay.providers.base import BaseDNSProvider


@dataclass
class AppContext:
    """
    Shared state for one server process.

    Attributes
    ----------
    config : Config
        The loaded configuration.
    cache : UpdateCache
        The update cache (owns the LRU tracker and counters).
    provider : BaseDNSProvider
        The DNS provider client.
    engine : UpdateDecisionEngine
        The update decision engine wired to `cache` and `provider`.
    """

    config: Config
    cache: UpdateCache
    provider: BaseDNSProvider
    engine: UpdateDecisionEngine


def build_context(
    config: Config,
    *,
    store: TTLStore | None = None,
    provider: BaseDNSProvider | None = None,
) -> AppContext:
    """
    Build the application context from configuration.

    Parameters
    ----------
    config : Config
        The loaded configuration.
    store : TTLStore | None, optional
        Cache backing store; an in-process store is used if None.
    provider : BaseDNSProvider | None, optional
        DNS provider client; a CloudFlare client is used if None.

    Returns
    -------
    AppContext
        The wired context.
    """
    cache = UpdateCache(
        store if store is not None else MemoryTTLStore(),
        max_entries=config.cache.max_entries,
        ttl=config.cache.ttl,
        key_prefix=config.cache.key_prefix,
    )
    if provider is None:
        provider = CloudFlareProvider(
            api_base=config.provider.api_base,
            timeout=config.provider.timeout,
        )
    return AppContext(
        config=config,
        cache=cache,
        provider=provider,
        engine=UpdateDecisionEngine(cache, provider),
    )
