# chartint/cache.py
"""
Process-lifetime cache of compiled policies.

Keyed by configuration id (see `EngineConfig.config_id`), never by object
identity. Configurations are immutable, so there is no invalidation: the
first build for a key wins, and a racing duplicate build is simply dropped.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PolicyCache(Generic[T]):
    def __init__(self, name: str = "policy"):
        self.name = name
        self._items: Dict[Hashable, T] = {}

    def get_or_build(self, key: Hashable, builder: Callable[[], T]) -> T:
        hit = self._items.get(key)
        if hit is not None:
            logger.debug("%s cache hit: %s", self.name, key)
            return hit
        logger.debug("%s cache miss: %s", self.name, key)
        # insert-if-absent; a concurrent first build of the same key keeps the earlier value
        return self._items.setdefault(key, builder())

    def __contains__(self, key: Hashable) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        self._items.clear()
