"""Access token verification tests (HS256 test configuration)."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from nextmcq.auth.jwt import create_access_token, reset_keys, verify_token
from nextmcq.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_keys():
    get_settings.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()
    reset_keys()


def _encode(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestVerifyToken:
    def test_round_trip(self):
        payload = verify_token(create_access_token(42, "teacher"))
        assert payload["sub"] == "42"
        assert payload["role"] == "teacher"
        assert payload["type"] == "access"

    def test_wrong_type_rejected(self):
        now = datetime.now(timezone.utc)
        token = _encode({
            "sub": "1", "type": "refresh", "iat": now,
            "exp": now + timedelta(minutes=5), "iss": get_settings().jwt_issuer,
        })
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token)

    def test_expired_rejected(self):
        now = datetime.now(timezone.utc)
        token = _encode({
            "sub": "1", "type": "access", "iat": now - timedelta(hours=2),
            "exp": now - timedelta(hours=1), "iss": get_settings().jwt_issuer,
        })
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_issuer_rejected(self):
        now = datetime.now(timezone.utc)
        token = _encode({"sub": "1", "type": "access", "iat": now, "exp": now + timedelta(minutes=5), "iss": "evil"})
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not-a-token")

    def test_missing_secret_rejected(self, monkeypatch):
        monkeypatch.setenv("NMQ_JWT_SECRET", "")
        get_settings.cache_clear()
        reset_keys()
        with pytest.raises(jwt.InvalidTokenError, match="secret"):
            verify_token("anything")
