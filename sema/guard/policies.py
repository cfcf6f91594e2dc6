"""
policies.py — Rate-limit policy definitions
===========================================
A policy couples a fixed window (``window_seconds`` / ``max_requests``)
with a scope predicate deciding which requests it counts, and an
optional ban escalation applied when the window is exceeded.

The four default policies cover the SEMA API surface:

  general  every request under the API prefix
  ai       Gemini-backed document endpoints (GET and health exempt)
  login    login attempts, with a longer ban against brute force
  upload   document uploads
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import Settings

ScopePredicate = Callable[[str, str], bool]  # (method, path) -> applies


def _humanize(seconds: int) -> str:
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} seconds"


@dataclass
class RateLimitPolicy:
    name: str
    window_seconds: int
    max_requests: int
    applies: ScopePredicate
    ban_seconds: Optional[int] = None
    error: str = "Too Many Requests"
    # Formatted with max_requests / window / ban
    message: str = "Too many requests. Please try again in a few minutes."

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError(f"Policy {self.name!r}: window_seconds must be positive.")
        if self.max_requests < 1:
            raise ValueError(f"Policy {self.name!r}: max_requests must be at least 1.")
        if self.ban_seconds is not None and self.ban_seconds <= 0:
            raise ValueError(f"Policy {self.name!r}: ban_seconds must be positive.")

    def render_message(self) -> str:
        return self.message.format(
            max_requests=self.max_requests,
            window=_humanize(self.window_seconds),
            ban=_humanize(self.ban_seconds) if self.ban_seconds else "",
        )


# ---------------------------------------------------------------------------
# Scope predicates
# ---------------------------------------------------------------------------

def under_prefix(prefix: str) -> ScopePredicate:
    """Every path at or below ``prefix``. An empty prefix matches everything."""
    def _applies(method: str, path: str) -> bool:
        if not prefix:
            return True
        return path == prefix or path.startswith(prefix + "/")
    return _applies


def exact_route(method: str, route: str) -> ScopePredicate:
    wanted = method.upper()

    def _applies(m: str, path: str) -> bool:
        return m.upper() == wanted and path.rstrip("/") == route
    return _applies


def ai_endpoints(prefix: str) -> ScopePredicate:
    """Document routes that call the generative model.

    Read-only (GET) requests and the health check are never counted.
    """
    pattern = re.compile(
        "^" + re.escape(prefix) + r"/documents/"
        r"(?:ask|summarize-text|[^/]+/ask|[^/]+/summary|folder/[^/]+/summary)/?$"
    )
    health = f"{prefix}/health"

    def _applies(method: str, path: str) -> bool:
        if method.upper() == "GET" or path == health:
            return False
        return pattern.match(path) is not None
    return _applies


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

def build_default_policies(settings: Settings) -> List[RateLimitPolicy]:
    """The four SEMA policies, in evaluation order."""
    prefix = settings.api_prefix
    return [
        RateLimitPolicy(
            name="general",
            window_seconds=settings.general_window_seconds,
            max_requests=settings.general_max_requests,
            applies=under_prefix(prefix),
            ban_seconds=settings.general_ban_seconds,
            message="Too many requests. Your IP address has been blocked for {ban}.",
        ),
        RateLimitPolicy(
            name="ai",
            window_seconds=settings.ai_window_seconds,
            max_requests=settings.ai_max_requests,
            applies=ai_endpoints(prefix),
            ban_seconds=settings.ai_ban_seconds,
            message=(
                "Too many AI requests ({max_requests} per {window} allowed). "
                "Your IP address has been blocked for {ban}."
            ),
        ),
        RateLimitPolicy(
            name="login",
            window_seconds=settings.login_window_seconds,
            max_requests=settings.login_max_requests,
            applies=exact_route("POST", f"{prefix}/auth/login"),
            ban_seconds=settings.login_ban_seconds,
            error="Too Many Login Attempts",
            message=(
                "More than {max_requests} login attempts within {window}. "
                "Your IP address has been blocked for {ban}."
            ),
        ),
        RateLimitPolicy(
            name="upload",
            window_seconds=settings.upload_window_seconds,
            max_requests=settings.upload_max_requests,
            applies=exact_route("POST", f"{prefix}/documents/upload"),
            ban_seconds=settings.upload_ban_seconds,
            message=(
                "Too many file uploads. Your IP address has been blocked for {ban}."
            ),
        ),
    ]
