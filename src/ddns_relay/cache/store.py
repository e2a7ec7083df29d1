"""
Backing stores for the update cache.

A backing store is a dumb key -> (bytes, expiry) resource. The update cache
is the only writer; it namespaces keys itself and decides what to evict.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class TTLStore(ABC):
    """
    Abstract base class for TTL key-value stores.

    Implementations raise `CacheIOError` (or any other exception) on I/O
    failure; the update cache treats every store error as a miss or a no-op.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """
        Read a value.

        Parameters
        ----------
        key : str
            The raw store key.

        Returns
        -------
        bytes | None
            The stored value, or None if absent or expired.
        """
        ...

    @abstractmethod
    async def put(self, key: str, value: bytes, ttl: int) -> None:
        """
        Write a value with a fresh expiry.

        Parameters
        ----------
        key : str
            The raw store key.
        value : bytes
            The value to store.
        ttl : int
            Seconds until the value expires.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a value. Deleting an absent key is not an error.

        Parameters
        ----------
        key : str
            The raw store key.
        """
        ...


class MemoryTTLStore(TTLStore):
    """
    In-process TTL store.

    Expired entries are dropped lazily when read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize a MemoryTTLStore.

        Parameters
        ----------
        clock : Callable[[], float], optional
            Monotonic time source in seconds.
        """
        self._clock = clock
        self._data: dict[str, tuple[bytes, float]] = {}

    async def get(self, key: str) -> bytes | None:
        """Read a value, dropping it if expired."""
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: bytes, ttl: int) -> None:
        """Write a value with a fresh expiry."""
        self._data[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        """Remove a value if present."""
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
