"""Test data builders."""

from __future__ import annotations

import itertools
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.auth.jwt import create_access_token
from nextmcq.db.models import User

_seq = itertools.count(1)

CRON_HEADERS = {"X-API-Key": "test-cron-key"}


def build_user(**fields: Any) -> User:
    n = next(_seq)
    fields.setdefault("name", f"User {n}")
    fields.setdefault("email", f"user{n}@example.com")
    fields.setdefault("role", "student")
    return User(**fields)


async def create_user(db: AsyncSession, **fields: Any) -> User:
    """Insert and commit one user."""
    user = build_user(**fields)
    db.add(user)
    await db.commit()
    return user


async def create_ranked_students(db: AsyncSession, count: int) -> list[User]:
    """Students whose rank equals their position in the returned list (distinct scores)."""
    users = [build_user(role="student", total_tests=count + 1 - i) for i in range(1, count + 1)]
    db.add_all(users)
    await db.commit()
    return users


async def reload_user(db: AsyncSession, user_id: int) -> User:
    """Fetch a user, overwriting any stale copy in the session."""
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
