"""
limiter.py — Fixed-window counters for a set of policies
========================================================
Thin layer over the ``limits`` fixed-window strategy. Each policy gets
its own counter per client id; the window opens on the client's first
request and the counter restarts once it elapses. Bursts straddling a
window boundary are allowed (up to twice ``max_requests`` in quick
succession), which is the accepted cost of a fixed window.

Counters live in a ``limits`` storage. The default is process memory;
any storage URI ``limits`` understands (e.g. ``redis://``, which needs
the ``redis`` extra) shares them between instances.

Windows always run on wall-clock time: ``limits`` stamps counters with
``time.time()`` itself, so the ban store's injectable clock does not
reach them.
"""
from __future__ import annotations

import math
import time
from typing import Dict, Iterable, Iterator, List, Optional

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from .policies import RateLimitPolicy


class PolicyLimiter:
    """Counts requests against every configured :class:`RateLimitPolicy`."""

    def __init__(
        self,
        policies: Iterable[RateLimitPolicy],
        storage: Optional[Storage] = None,
    ) -> None:
        self._policies: List[RateLimitPolicy] = list(policies)
        names = [p.name for p in self._policies]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate policy names: {names}")

        self._storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._items: Dict[str, RateLimitItem] = {
            p.name: RateLimitItemPerSecond(p.max_requests, p.window_seconds)
            for p in self._policies
        }

    @classmethod
    def from_uri(cls, policies: Iterable[RateLimitPolicy], storage_uri: str) -> "PolicyLimiter":
        return cls(policies, storage_from_string(storage_uri))

    @property
    def policies(self) -> List[RateLimitPolicy]:
        return list(self._policies)

    def get_policy(self, name: str) -> RateLimitPolicy:
        for policy in self._policies:
            if policy.name == name:
                return policy
        raise KeyError(name)

    def matching(self, method: str, path: str) -> Iterator[RateLimitPolicy]:
        """Policies whose scope covers this request, in declaration order."""
        return (p for p in self._policies if p.applies(method, path))

    def hit(self, policy: RateLimitPolicy, client_id: str) -> bool:
        """Count one request. False once the count exceeds ``max_requests``."""
        return self._strategy.hit(self._items[policy.name], policy.name, client_id)

    def remaining(self, policy: RateLimitPolicy, client_id: str) -> int:
        _reset, remaining = self._strategy.get_window_stats(
            self._items[policy.name], policy.name, client_id
        )
        return remaining

    def window_reset_in(self, policy: RateLimitPolicy, client_id: str) -> int:
        """Seconds until the client's current window for ``policy`` closes."""
        reset_time, _remaining = self._strategy.get_window_stats(
            self._items[policy.name], policy.name, client_id
        )
        return max(0, math.ceil(reset_time - time.time()))

    def clear_client(self, client_id: str) -> None:
        """Drop every policy counter held for ``client_id``."""
        for policy in self._policies:
            self._strategy.clear(self._items[policy.name], policy.name, client_id)

    def reset(self) -> None:
        """Drop every counter."""
        self._storage.reset()
