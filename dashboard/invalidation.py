"""Explicit cache invalidation between dashboard stores.

A mutation announces ``invalidate(key)``; whichever collection or detail
view owns that key refetches. Keys are tuples so a prefix such as
``("application",)`` matches every ``("application", <id>)`` subscriber.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, DefaultDict, Hashable, List, Tuple

from dashboard.utils.logging import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[Hashable, ...]
Listener = Callable[[CacheKey], None]


def application_key(application_id) -> CacheKey:
    return ("application", str(application_id))


class InvalidationBus:
    """Routes invalidation notices to subscribers by key prefix."""

    def __init__(self):
        self._listeners: DefaultDict[CacheKey, List[Listener]] = defaultdict(list)
        self.history: List[CacheKey] = []

    def subscribe(self, key: CacheKey, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``key``; returns an unsubscribe callable."""
        key = tuple(key)
        self._listeners[key].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def invalidate(self, key: CacheKey) -> int:
        """Notify every subscriber whose key starts with ``key``.

        Returns the number of listeners notified.
        """
        key = tuple(key)
        self.history.append(key)
        notified = 0
        for sub_key, listeners in list(self._listeners.items()):
            if sub_key[: len(key)] != key:
                continue
            for listener in list(listeners):
                listener(sub_key)
                notified += 1
        logger.debug("Invalidated %s (%d listener(s))", key, notified)
        return notified
