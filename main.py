"""FastAPI application protected by the per-client rate governor."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request

from governor.config import Settings, get_settings
from governor.identity import identifier_from_name
from governor.limiter import RateLimiter
from governor.logging_config import configure_logging
from governor.middleware import install

configure_logging()
LOGGER = logging.getLogger(__name__)


def build_limiter(settings: Settings) -> RateLimiter:
    """Create a limiter from environment-derived settings."""

    return RateLimiter(
        settings.limiter_config(),
        identifier=identifier_from_name(settings.identify),
        shards=settings.shards,
    )


def get_limiter(request: Request) -> RateLimiter:
    """Provide the limiter installed on the application."""

    return request.app.state.limiter


def create_app(limiter: Optional[RateLimiter] = None) -> FastAPI:
    """Build the application with ``limiter`` (or one from the environment) installed."""

    settings = get_settings()
    if limiter is None:
        limiter = build_limiter(settings)
    application = FastAPI(title="Request Rate Governor")
    application.state.limiter = limiter
    install(application, limiter)

    @application.get("/")
    async def index(request: Request) -> dict:
        """Trivial downstream handler reached only by admitted requests."""

        return {"status": "ok", "client": limiter.identify(request)}

    @application.get("/api/limits")
    def limits(current: RateLimiter = Depends(get_limiter)) -> dict:
        """Expose the active limiter configuration."""

        config = current.config
        return {
            "maxRequests": config.max_requests,
            "windowSeconds": config.window,
            "banDurationSeconds": config.ban_duration,
            "banExpiry": config.ban_expiry.value,
            "trackedClients": len(current.store),
        }

    LOGGER.info(
        "Rate limiter configured",
        extra={"value": {"max_requests": limiter.config.max_requests, "window": limiter.config.window}},
    )
    return application


app = create_app()
