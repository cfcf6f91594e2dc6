"""
ban_store.py — In-memory client bans with expiry
================================================
Maps a client identifier to the epoch second its ban ends. Expired
records are dropped lazily when read and in bulk by ``sweep()``, which
the application runs on a timer so clients that never come back do not
pin memory forever.

State is process-local: a ban issued by one worker is invisible to the
others. Bans are a transient defensive measure, not an audit trail, so
nothing is persisted across restarts.
"""
from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional

logger = logging.getLogger("sema.guard")


@dataclass(frozen=True)
class BanRecord:
    client_id: str
    banned_until: float  # epoch seconds

    def remaining_seconds(self, now: float) -> float:
        return max(0.0, self.banned_until - now)

    def remaining_minutes(self, now: float) -> int:
        """Whole minutes left, rounded up."""
        return math.ceil(self.remaining_seconds(now) / 60)

    @property
    def banned_until_dt(self) -> datetime:
        return datetime.fromtimestamp(self.banned_until, tz=timezone.utc)


class BanStore:
    """Thread-safe map of client id -> ban expiry."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._bans: Dict[str, float] = {}

    def now(self) -> float:
        return self._clock()

    def ban(self, client_id: str, duration_seconds: float) -> BanRecord:
        """Ban ``client_id`` for ``duration_seconds``. Overwrites any existing ban."""
        until = self._clock() + duration_seconds
        with self._lock:
            self._bans[client_id] = until
        record = BanRecord(client_id, until)
        logger.warning(
            "Client banned: %s until %s", client_id, record.banned_until_dt.isoformat()
        )
        return record

    def get(self, client_id: str) -> Optional[BanRecord]:
        """Return the active ban for ``client_id``, dropping it if it has expired."""
        now = self._clock()
        with self._lock:
            until = self._bans.get(client_id)
            if until is None:
                return None
            if now > until:
                del self._bans[client_id]
                expired = True
            else:
                expired = False
        if expired:
            logger.info("Client ban expired: %s", client_id)
            return None
        return BanRecord(client_id, until)

    def is_banned(self, client_id: str) -> bool:
        return self.get(client_id) is not None

    def unban(self, client_id: str) -> bool:
        """Lift a ban. Returns False when there was nothing to lift."""
        with self._lock:
            removed = self._bans.pop(client_id, None) is not None
        if removed:
            logger.info("Client unbanned: %s", client_id)
        return removed

    def clear(self) -> int:
        with self._lock:
            count = len(self._bans)
            self._bans.clear()
        logger.info("All client bans cleared (%d)", count)
        return count

    def list_active(self) -> List[BanRecord]:
        """Every ban that has not expired yet, soonest expiry first."""
        now = self._clock()
        with self._lock:
            active = [
                BanRecord(client_id, until)
                for client_id, until in self._bans.items()
                if now <= until
            ]
        return sorted(active, key=lambda r: r.banned_until)

    def sweep(self) -> int:
        """Delete every expired ban. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [cid for cid, until in self._bans.items() if now > until]
            for cid in expired:
                del self._bans[cid]
        if expired:
            logger.info("Cleaned %d expired client bans", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._bans)


async def sweep_periodically(store: BanStore, interval_seconds: float) -> None:
    """Run ``store.sweep()`` every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        store.sweep()
