"""Error handlers: every failure leaves as a ``{success, message, data}`` envelope.

Cron callers only look at the status code to decide whether to retry, so a
database outage is a 503 rather than a generic 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nextmcq.exceptions import InvalidCategoryError, RewardsError, SnapshotNotFoundError, UserNotFoundError
from nextmcq.schemas import error_body

logger = structlog.get_logger()

_REWARDS_ERROR_STATUS: dict[type[RewardsError], int] = {
    InvalidCategoryError: 400,
    SnapshotNotFoundError: 404,
    UserNotFoundError: 404,
}


def _envelope(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(message, **extra))


def setup_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = _envelope(exc.status_code, exc.detail if isinstance(exc.detail, str) else "Request failed")
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _envelope(422, "Validation error", errors=jsonable_encoder(exc.errors()))

    @app.exception_handler(RewardsError)
    async def on_rewards_error(request: Request, exc: RewardsError) -> JSONResponse:
        status_code = _REWARDS_ERROR_STATUS.get(type(exc), 409)
        logger.warning("rewards_error", path=request.url.path, status=status_code, error=str(exc))
        return _envelope(status_code, str(exc))

    @app.exception_handler(OperationalError)
    async def on_database_unavailable(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error("database_unavailable", path=request.url.path, error=str(exc.orig))
        return _envelope(503, "Database unavailable, retry later")

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", path=request.url.path, method=request.method, exc_info=exc)
        return _envelope(500, "Internal server error")
