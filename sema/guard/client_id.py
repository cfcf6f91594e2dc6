from __future__ import annotations

from starlette.requests import HTTPConnection

UNKNOWN_CLIENT = "unknown"


def resolve_client_id(conn: HTTPConnection) -> str:
    """Resolve the network-origin key used for bans and rate limits.

    Fallback order:
      1. peer address of the ASGI connection (already proxy-resolved when
         uvicorn runs with ``--proxy-headers``); ASGI exposes a single
         address, so it also stands in for the connection-level one
      2. first entry of ``X-Forwarded-For``
      3. ``X-Real-IP``
      4. ``"unknown"``
    """
    if conn.client and conn.client.host:
        return conn.client.host

    forwarded = conn.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first

    real_ip = conn.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT
