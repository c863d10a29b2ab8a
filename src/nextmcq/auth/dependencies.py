"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets

import jwt
from fastapi import Depends, Header, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.auth.jwt import verify_token
from nextmcq.config import get_settings
from nextmcq.database import get_session
from nextmcq.db.models import User

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the Bearer JWT, return the User model.

    Raises 401 on a missing/invalid token or unknown user, 403 on a
    deactivated account.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid token subject") from e

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")
    return user


async def require_cron_key(
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    api_key: str | None = Query(None, alias="apiKey"),
) -> None:
    """Guard for cron-triggered endpoints.

    The key comes from the X-API-Key header or the apiKey query parameter.
    An unset NMQ_CRON_API_KEY rejects every request.
    """
    expected = get_settings().cron_api_key
    provided = x_api_key or api_key
    if not expected or not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
