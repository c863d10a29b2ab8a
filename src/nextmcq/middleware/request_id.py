"""Per-request log context.

Every request gets an id (the caller's ``X-Request-Id`` when it is usable,
otherwise a fresh UUID) and a ``caller`` tag so cron-triggered reward runs
can be told apart from user traffic in the logs.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

MAX_REQUEST_ID_LENGTH = 64


def _request_id(request: Request) -> str:
    incoming = request.headers.get("X-Request-Id", "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return str(uuid.uuid4())


def _caller(request: Request) -> str:
    if "X-API-Key" in request.headers or "apiKey" in request.query_params:
        return "cron"
    if "Authorization" in request.headers:
        return "user"
    return "anonymous"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            caller=_caller(request),
        )
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
