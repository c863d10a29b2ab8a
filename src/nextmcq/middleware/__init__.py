"""HTTP middleware stack for the rewards API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nextmcq.config import Settings
from nextmcq.middleware.error_handler import setup_error_handlers
from nextmcq.middleware.logging import setup_logging
from nextmcq.middleware.rate_limit import RateLimitMiddleware
from nextmcq.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Outermost first: CORS, request id, rate limit, then the routes.

    Starlette wraps in reverse-add order, so CORS is added last and also
    covers the rate limiter's 429 responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    # Browsers only call the leaderboard and history routes; cron callers are server-side
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
