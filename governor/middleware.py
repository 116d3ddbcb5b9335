"""FastAPI middleware that puts a :class:`RateLimiter` in front of every route."""
from __future__ import annotations

import logging
import math
from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from governor.limiter import RateLimited, RateLimiter

LOGGER = logging.getLogger(__name__)

TOO_MANY_REQUESTS_DETAIL = "Too many requests. Please slow down."

CallNext = Callable[[Request], Awaitable[Response]]


def too_many_requests(exc: RateLimited) -> JSONResponse:
    """Translate a rejection into an HTTP 429 response."""

    headers = {}
    if exc.retry_after > 0:
        headers["Retry-After"] = str(math.ceil(exc.retry_after))
    return JSONResponse(
        status_code=429,
        content={"detail": TOO_MANY_REQUESTS_DETAIL},
        headers=headers,
    )


def rate_limit_middleware(limiter: RateLimiter) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Return an HTTP middleware function bound to ``limiter``."""

    async def apply_rate_limiting(request: Request, call_next: CallNext) -> Response:
        client_id = limiter.identify(request)
        try:
            limiter.enforce(client_id)
        except RateLimited as exc:
            return too_many_requests(exc)
        try:
            response = await call_next(request)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unhandled exception", extra={"client_id": client_id})
            raise exc
        return response

    return apply_rate_limiting


def install(app: FastAPI, limiter: RateLimiter) -> RateLimiter:
    """Register the rate limiting middleware on ``app``."""

    app.middleware("http")(rate_limit_middleware(limiter))
    return limiter
