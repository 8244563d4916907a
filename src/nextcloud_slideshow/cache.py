"""Bounded in-memory image cache with insertion-order eviction."""

import logging
from collections import OrderedDict
from typing import Iterator, Optional

from .config import DEFAULT_CACHE_SIZE
from .models import CacheEntry

logger = logging.getLogger(__name__)


class ImageCache:
    """FIFO cache: when full, the oldest inserted key goes first.

    Reads do not refresh an entry's position. Re-storing an existing key
    replaces the value in place and keeps its original position.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> Optional[str]:
        """Store an entry, evicting the oldest one if the bound is reached.

        Returns:
            The evicted key, if any.
        """
        evicted = None
        if key not in self._entries and len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry: {evicted}")
        self._entries[key] = entry
        return evicted

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
