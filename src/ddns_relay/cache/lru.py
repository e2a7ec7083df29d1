"""
Bounded least-recently-used key tracker.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class LRUKeyTracker:
    """
    Ordered set of keys with a capacity bound.

    The first key in the underlying OrderedDict is the least recently used.
    Every operation is O(1).
    """

    def __init__(self, capacity: int) -> None:
        """
        Initialize an LRUKeyTracker.

        Parameters
        ----------
        capacity : int
            Maximum number of keys to track.

        Raises
        ------
        ValueError
            If capacity is less than 1.
        """
        if capacity < 1:
            msg = f"capacity must be at least 1, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._keys: OrderedDict[str, None] = OrderedDict()

    def access(self, key: str) -> str | None:
        """
        Record a write access, admitting the key if it is new.

        Parameters
        ----------
        key : str
            The key being written.

        Returns
        -------
        str | None
            The key evicted to make room, or None if nothing was evicted.
        """
        if key in self._keys:
            self._keys.move_to_end(key)
            return None

        self._keys[key] = None
        if len(self._keys) > self.capacity:
            oldest, _ = self._keys.popitem(last=False)
            return oldest
        return None

    def touch(self, key: str) -> bool:
        """
        Promote a tracked key to most recently used.

        Parameters
        ----------
        key : str
            The key being read.

        Returns
        -------
        bool
            True if the key was tracked.
        """
        if key not in self._keys:
            return False
        self._keys.move_to_end(key)
        return True

    def discard(self, key: str) -> None:
        """Stop tracking a key if present."""
        self._keys.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        # Least recently used first
        return iter(self._keys)
