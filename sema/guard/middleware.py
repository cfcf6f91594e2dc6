from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .client_id import resolve_client_id
from .core import ClientBanned, GuardRejection, RateGuard

logger = logging.getLogger("sema.guard")


class RateGuardMiddleware(BaseHTTPMiddleware):
    """Rejects banned and rate-limited clients before routing.

    Only paths under the guard's API prefix are inspected. The resolved
    client id is left on ``request.state.client_id`` for handlers.
    """

    def __init__(self, app: FastAPI, guard: RateGuard) -> None:
        super().__init__(app)
        self.guard = guard

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not self.guard.protects(path):
            return await call_next(request)

        client_id = resolve_client_id(request)
        request.state.client_id = client_id
        try:
            self.guard.enforce(request.method, path, client_id)
        except ClientBanned as exc:
            logger.info(
                "Blocked request from banned client: %s (%s min remaining)",
                client_id,
                exc.retry_after // 60,
            )
            return exc.to_response()
        except GuardRejection as exc:
            return exc.to_response()
        return await call_next(request)
