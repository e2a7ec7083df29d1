"""
Update cache for DDNS Relay.

Remembers the last IP written (or confirmed) for each DNS record so that
repeated polls with an unchanged address can be answered without a provider
write. A bounded LRU tracker decides which keys stay; evictions are pushed
through to the backing store immediately so no value outlives its key.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING
from urllib.parse import quote

from ddns_relay.cache.lru import LRUKeyTracker
from ddns_relay.models import CacheStats

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import Final

    from ddns_relay.cache.store import TTLStore
    from ddns_relay.models import RecordFamily


# Default cache policy
DEFAULT_KEY_PREFIX: Final[str] = "ddns:"
DEFAULT_MAX_ENTRIES: Final[int] = 700_000
DEFAULT_TTL: Final[int] = 86400


logger = logging.getLogger(__name__)


class UpdateCache:
    """
    Bounded TTL cache of record IPs with hit/miss accounting.

    Both `get` hits and `put` count as an access for LRU ordering. The
    tracker and counters are owned by this object; the store is written and
    evicted from by this object only.
    """

    def __init__(
        self,
        store: TTLStore,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: int = DEFAULT_TTL,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        """
        Initialize an UpdateCache.

        Parameters
        ----------
        store : TTLStore
            The backing key-value store.
        max_entries : int, optional
            Capacity of the LRU tracker.
        ttl : int, optional
            Lifetime of a cached value in seconds.
        key_prefix : str, optional
            Namespace prefix for every key.
        """
        self.store = store
        self.ttl = ttl
        self.key_prefix = key_prefix
        self._tracker = LRUKeyTracker(max_entries)
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    def key(self, zone: str, record_id: str, family: RecordFamily) -> str:
        """
        Build the cache key for a record.

        Each component is percent-encoded so that separators inside a zone
        or record id cannot make two distinct records share a key.

        Parameters
        ----------
        zone : str
            The provider zone identifier.
        record_id : str
            The provider record identifier.
        family : RecordFamily
            The record family.

        Returns
        -------
        str
            The cache key.
        """
        parts = (quote(str(part), safe="") for part in (zone, record_id, family))
        return self.key_prefix + ":".join(parts)

    async def get(self, key: str) -> str | None:
        """
        Look up the cached IP for a key, counting a hit or a miss.

        Parameters
        ----------
        key : str
            The cache key.

        Returns
        -------
        str | None
            The cached IP, or None on a miss or store error.
        """
        value = await self._read(key)
        if value is None:
            self._misses += 1
            return None

        self._hits += 1
        self._tracker.touch(key)
        return value

    async def peek(self, key: str) -> str | None:
        """
        Look up the cached IP for a key without counting or promoting it.

        Parameters
        ----------
        key : str
            The cache key.

        Returns
        -------
        str | None
            The cached IP, or None on a miss or store error.
        """
        return await self._read(key)

    async def put(self, key: str, ip: str) -> None:
        """
        Store an IP for a key with a fresh TTL.

        The key is admitted to the tracker only once its value is written. A
        new key admitted at capacity evicts the least recently used key from
        both the tracker and the store. Store errors are logged and swallowed;
        a failed write leaves the tracker unchanged.

        Parameters
        ----------
        key : str
            The cache key.
        ip : str
            The IP to store.
        """
        async with self._lock:
            try:
                await self.store.put(key, ip.encode(), self.ttl)
            except Exception as e:  # noqa: BLE001
                logger.warning("[cache] Failed to write %s: '%s'", key, e)
                return

            evicted = self._tracker.access(key)
            if evicted is not None:
                logger.debug("[cache] Evicting %s", evicted)
                try:
                    await self.store.delete(evicted)
                except Exception as e:  # noqa: BLE001
                    logger.warning("[cache] Failed to evict %s: '%s'", evicted, e)

    def stats(self) -> CacheStats:
        """
        Get a snapshot of the cache counters.

        Returns
        -------
        CacheStats
            Tracked key count, hits, misses and the reduced hit:miss ratio.
        """
        hits, misses = self._hits, self._misses
        divisor = math.gcd(hits, misses) or 1
        return CacheStats(
            tracked_keys=len(self._tracker),
            hits=hits,
            misses=misses,
            ratio=f"{hits // divisor}:{misses // divisor}",
        )

    def reset(self) -> None:
        """Zero the hit and miss counters. Keys and values are kept."""
        self._hits = 0
        self._misses = 0

    def __contains__(self, key: object) -> bool:
        return key in self._tracker

    def __len__(self) -> int:
        return len(self._tracker)

    def __iter__(self) -> Iterator[str]:
        # Tracked keys, least recently used first
        return iter(self._tracker)

    async def _read(self, key: str) -> str | None:
        try:
            raw = await self.store.get(key)
        except Exception as e:  # noqa: BLE001
            logger.warning("[cache] Failed to read %s: '%s'", key, e)
            return None

        if raw is None:
            return None
        try:
            return raw.decode()
        except UnicodeDecodeError as e:
            logger.warning("[cache] Undecodable value for %s: '%s'", key, e)
            return None
