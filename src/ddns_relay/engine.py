"""
Update decision engine for DDNS Relay.

Decides whether the caller's observed IP requires a write to the DNS
provider, using the update cache to recognize records that are already
current. Cache write-backs are handed to a caller-supplied scheduler so
the response never waits on them.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from ddns_relay.address import canonical, classify
from ddns_relay.errors import DDNSError, UnrecognizedAddressError
from ddns_relay.models import DDNSParams, UpdateOutcome
from ddns_relay.providers.base import ProviderCredentials

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from typing import Any

    from ddns_relay.cache.manager import UpdateCache
    from ddns_relay.models import DNSRecord, RecordFamily
    from ddns_relay.providers.base import BaseDNSProvider

    # Registers `func(*args)` to run after the response, e.g.
    # `fastapi.BackgroundTasks.add_task`. Must not run it inline.
    Scheduler = Callable[..., Any]


logger = logging.getLogger(__name__)


class UpdateDecisionEngine:
    """
    Orchestrates one DDNS update request.

    validate -> classify -> fetch upstream record -> derive cache key ->
    cache fast path -> upstream-confirmed -> provider write.

    The upstream fetch always happens first because the record id is part
    of the cache key. A cached IP only short-circuits the write decision,
    and only when the fetched record agrees with it.
    """

    def __init__(self, cache: UpdateCache, provider: BaseDNSProvider) -> None:
        """
        Initialize an UpdateDecisionEngine.

        Parameters
        ----------
        cache : UpdateCache
            The update cache.
        provider : BaseDNSProvider
            The DNS provider client.
        """
        self.cache = cache
        self.provider = provider

    async def handle(
        self,
        query: Mapping[str, str],
        client_ip: str,
        schedule: Scheduler,
    ) -> UpdateOutcome:
        """
        Validate raw query parameters and run the update flow.

        Parameters
        ----------
        query : Mapping[str, str]
            The request query parameters.
        client_ip : str
            The caller's observed IP.
        schedule : Scheduler
            Background task registration for cache write-backs.

        Returns
        -------
        UpdateOutcome
            The terminal success state.

        Raises
        ------
        DDNSError
            For every rejected terminal state.
        """
        params = DDNSParams.from_query(query)
        return await self.update(params, client_ip, schedule)

    async def update(
        self,
        params: DDNSParams,
        client_ip: str,
        schedule: Scheduler,
    ) -> UpdateOutcome:
        """
        Point the requested record at the caller's IP if it is not already.

        Parameters
        ----------
        params : DDNSParams
            The validated request parameters.
        client_ip : str
            The caller's observed IP.
        schedule : Scheduler
            Background task registration for cache write-backs.

        Returns
        -------
        UpdateOutcome
            The terminal success state.

        Raises
        ------
        DDNSError
            For every rejected terminal state. The cache is left untouched.
        """
        start_time = time.monotonic()

        logger.info(
            "[request] zone=%s name=%s ip=%s",
            params.zone,
            params.name,
            client_ip,
        )

        try:
            outcome = await self._decide(params, client_ip, schedule)
        except DDNSError as e:
            logger.warning(
                "[response] status=error code=%s message=%s duration=%.2fs",
                e.code,
                e.message,
                time.monotonic() - start_time,
            )
            raise

        logger.info(
            "[response] status=success action=%s source=%s duration=%.2fs",
            outcome.action,
            outcome.source,
            time.monotonic() - start_time,
        )
        return outcome

    async def _decide(
        self,
        params: DDNSParams,
        client_ip: str,
        schedule: Scheduler,
    ) -> UpdateOutcome:
        family = classify(client_ip)
        if family is None:
            msg = f"Unrecognized client address: '{client_ip}'"
            raise UnrecognizedAddressError(msg)
        client_ip = canonical(client_ip)

        credentials = ProviderCredentials(params.email, params.key)
        record = await self.provider.get_record(
            params.zone,
            params.name,
            family,
            credentials,
        )

        upstream_ip = canonical(record.content)
        cache_key = self.cache.key(params.zone, record.id, family)
        cached_ip = await self.cache.get(cache_key)

        if cached_ip == client_ip:
            if upstream_ip == client_ip:
                return self._outcome("unchanged", "cache", params, record, client_ip, family)
            logger.warning(
                "[decision] Stale cache entry for %s: cached=%s upstream=%s",
                params.name,
                cached_ip,
                record.content,
            )

        if upstream_ip == client_ip:
            schedule(self.cache.put, cache_key, client_ip)
            return self._outcome("unchanged", "upstream", params, record, client_ip, family)

        await self.provider.update_record(
            params.zone,
            record,
            client_ip,
            credentials,
        )
        schedule(self.cache.put, cache_key, client_ip)

        logger.info(
            "[decision] %s %s: %s -> %s",
            params.name,
            family,
            record.content,
            client_ip,
        )
        return self._outcome(
            "updated",
            "provider",
            params,
            record,
            client_ip,
            family,
            previous_ip=record.content,
        )

    @staticmethod
    def _outcome(
        action: str,
        source: str,
        params: DDNSParams,
        record: DNSRecord,
        client_ip: str,
        family: RecordFamily,
        previous_ip: str | None = None,
    ) -> UpdateOutcome:
        return UpdateOutcome(
            action=action,  # type: ignore[arg-type]
            source=source,  # type: ignore[arg-type]
            ip=client_ip,
            family=family,
            record_name=params.name,
            record_id=record.id,
            previous_ip=previous_ip,
        )
