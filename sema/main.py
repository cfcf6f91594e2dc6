from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pythonjsonlogger import jsonlogger

from .api import routes_admin
from .config import Settings, settings
from .guard.ban_store import sweep_periodically
from .guard.core import RateGuard
from .guard.limiter import PolicyLimiter
from .guard.middleware import RateGuardMiddleware
from .guard.policies import build_default_policies
from .schemas import HealthStatus

log = logging.getLogger("sema.startup")

# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------

def _configure_logging() -> None:
    """Configure structured JSON logging when log_format=json (default)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    root.addHandler(handler)

_configure_logging()


def build_guard(cfg: Settings) -> RateGuard:
    """Rate guard with the default SEMA policies."""
    limiter = PolicyLimiter.from_uri(build_default_policies(cfg), cfg.rate_limit_storage_uri)
    return RateGuard(limiter, api_prefix=cfg.api_prefix)


def create_app(cfg: Optional[Settings] = None, guard: Optional[RateGuard] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    cfg = cfg or settings
    guard = guard or build_guard(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(
            sweep_periodically(guard.bans, cfg.ban_sweep_interval_seconds)
        )
        log.info("Ban sweeper started (every %ss)", cfg.ban_sweep_interval_seconds)
        yield
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper

    app = FastAPI(
        title="SEMA API",
        version="1.0.0",
        description=(
            "Document management API with AI summaries, keyword extraction, "
            "semantic search and question answering."
        ),
        docs_url="/docs" if cfg.environment != "production" else None,
        redoc_url="/redoc" if cfg.environment != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.rate_guard = guard

    # CORS wraps the guard so 403/429 bodies stay readable from the browser
    app.add_middleware(RateGuardMiddleware, guard=guard)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.allow_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-Key"],
    )

    @app.get(f"{cfg.api_prefix}/health", response_model=HealthStatus, tags=["meta"])
    def health() -> HealthStatus:
        return HealthStatus()

    app.include_router(routes_admin.router, prefix=cfg.api_prefix)

    return app


app = create_app()
