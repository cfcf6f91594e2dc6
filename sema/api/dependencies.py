from __future__ import annotations

import secrets

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config import Settings
from ..guard.core import RateGuard

admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


def get_guard(request: Request) -> RateGuard:
    """The application's rate guard."""
    return request.app.state.rate_guard


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_admin_key(
    request: Request,
    api_key: str | None = Security(admin_key_header),
) -> None:
    """Admin routes need ``X-Admin-Key`` to match SEMA_ADMIN_API_KEY.

    With no key configured the admin API is switched off entirely.
    """
    expected = get_app_settings(request).admin_api_key
    if not expected:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="Admin API is disabled.")
    if not api_key or not secrets.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key.",
            headers={"WWW-Authenticate": "X-Admin-Key"},
        )
