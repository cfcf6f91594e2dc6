"""
core.py — The rate guard
========================
Owns the ban store and the policy limiter and decides, per request,
whether it may proceed:

  1. Ban check      banned clients are rejected (403) before anything
                    is counted
  2. Rate limits    every matching policy counts the request; the first
                    one exceeded rejects it (429) and, if the policy
                    escalates, bans the client

Rejections are raised as ``GuardRejection`` subclasses and rendered to
JSON by the middleware, so route handlers never see them.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from fastapi.responses import JSONResponse

from .ban_store import BanRecord, BanStore
from .limiter import PolicyLimiter
from .policies import RateLimitPolicy

logger = logging.getLogger("sema.guard")


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class GuardRejection(Exception):
    """A request refused by the guard. Carries the JSON error contract."""

    status_code: int = 400

    def __init__(self, error: str, message: str, retry_after: int) -> None:
        self.error = error
        self.message = message
        self.retry_after = retry_after
        super().__init__(message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, "retryAfter": self.retry_after}

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_body(),
            headers={"Retry-After": str(self.retry_after)},
        )


class ClientBanned(GuardRejection):
    """403 — the client is serving a ban."""

    status_code = 403

    def __init__(self, record: BanRecord, now: float) -> None:
        self.record = record
        minutes = max(1, record.remaining_minutes(now))
        super().__init__(
            error="IP Blocked",
            message=(
                f"This IP address is blocked for {minutes} more minute(s) "
                "because too many requests were sent. Access is temporarily restricted."
            ),
            retry_after=minutes * 60,
        )


class RateLimited(GuardRejection):
    """429 — the client just exceeded a policy window."""

    status_code = 429

    def __init__(self, policy: RateLimitPolicy, retry_after: int) -> None:
        self.policy = policy
        super().__init__(
            error=policy.error,
            message=policy.render_message(),
            retry_after=retry_after,
        )


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------

class RateGuard:
    """Ban enforcement plus policy rate limiting for one process."""

    def __init__(
        self,
        policies: Iterable[RateLimitPolicy] | PolicyLimiter,
        bans: Optional[BanStore] = None,
        api_prefix: str = "/api",
    ) -> None:
        self.limiter = policies if isinstance(policies, PolicyLimiter) else PolicyLimiter(policies)
        self.bans = bans if bans is not None else BanStore()
        self.api_prefix = api_prefix

    def protects(self, path: str) -> bool:
        """True for paths the guard sits in front of."""
        if not self.api_prefix:
            return True
        return path == self.api_prefix or path.startswith(self.api_prefix + "/")

    def check_ban(self, client_id: str) -> None:
        """Raise :class:`ClientBanned` if ``client_id`` is serving a ban."""
        record = self.bans.get(client_id)
        if record is not None:
            raise ClientBanned(record, self.bans.now())

    def check_limits(self, method: str, path: str, client_id: str) -> None:
        """Count the request against every matching policy.

        Raises :class:`RateLimited` for the first policy exceeded, after
        banning the client when that policy escalates.
        """
        for policy in self.limiter.matching(method, path):
            if self.limiter.hit(policy, client_id):
                continue
            if policy.ban_seconds:
                self.bans.ban(client_id, policy.ban_seconds)
                retry_after = policy.ban_seconds
            else:
                retry_after = self.limiter.window_reset_in(policy, client_id)
            logger.warning(
                "Rate limit exceeded: policy=%s client=%s path=%s", policy.name, client_id, path
            )
            raise RateLimited(policy, retry_after)

    def enforce(self, method: str, path: str, client_id: str) -> None:
        self.check_ban(client_id)
        self.check_limits(method, path, client_id)

    # -- administrative operations -------------------------------------------

    def ban_client(self, client_id: str, duration_seconds: float) -> BanRecord:
        return self.bans.ban(client_id, duration_seconds)

    def unban_client(self, client_id: str) -> bool:
        """Lift a ban and restart the client's windows.

        Counters left past their limit would re-ban on the next request.
        """
        self.limiter.clear_client(client_id)
        return self.bans.unban(client_id)

    def clear_all_bans(self) -> int:
        self.limiter.reset()
        return self.bans.clear()

    def list_active_bans(self) -> List[BanRecord]:
        return self.bans.list_active()

    def reset(self) -> None:
        """Forget every ban and counter."""
        self.bans.clear()
        self.limiter.reset()
