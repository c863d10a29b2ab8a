"""Live leaderboard queries over the users table."""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import User
from nextmcq.ranking.ranking import rank_entries, total_pages
from nextmcq.ranking.scoring import compute_score, role_for_category, score_expression

MAX_PAGE_SIZE = 100


def _category_filters(category: str) -> list[Any]:
    role = role_for_category(category)
    filters: list[Any] = [User.is_active.is_(True)]
    if role is not None:
        filters.append(User.role == role)
    return filters


async def fetch_ranked_users(
    db: AsyncSession,
    category: str,
    limit: int,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Fetch active users of a category ordered by score, with ranks.

    Ranks are offset-aware: the first row of page 3 of size 50 is rank 101.
    """
    score = score_expression().label("score")
    result = await db.execute(
        select(User.id, User.name, User.email, User.role, User.level, User.coins, User.xp, score)
        .where(*_category_filters(category))
        .order_by(score.desc(), User.id.asc())
        .offset(offset)
        .limit(limit)
    )
    rows = [
        {
            "user_id": row.id,
            "name": row.name,
            "email": row.email,
            "role": row.role,
            "level": row.level,
            "coins": row.coins,
            "xp": row.xp,
            "score": int(row.score or 0),
        }
        for row in result
    ]
    ranked = rank_entries(rows)
    for entry in ranked:
        entry["rank"] += offset
    return ranked


async def count_category_users(db: AsyncSession, category: str) -> int:
    result = await db.execute(select(func.count(User.id)).where(*_category_filters(category)))
    return int(result.scalar_one())


async def get_leaderboard(
    db: AsyncSession,
    category: str = "global",
    page: int = 1,
    limit: int = 50,
) -> dict[str, Any]:
    """Paginated live leaderboard for a category (page size capped at 100)."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    page = max(page, 1)
    skip = (page - 1) * limit

    entries = await fetch_ranked_users(db, category, limit=limit, offset=skip)
    total_users = await count_category_users(db, category)

    return {
        "category": category,
        "leaderboard": entries,
        "pagination": {
            "current_page": page,
            "total_pages": total_pages(total_users, limit),
            "total_users": total_users,
            "has_next": skip + limit < total_users,
            "has_prev": page > 1,
        },
    }


async def get_user_rank(db: AsyncSession, user: User, category: str = "global") -> dict[str, Any] | None:
    """Live rank of a user within a category, or None if the user is not ranked there."""
    role = role_for_category(category)
    if not user.is_active or (role is not None and user.role != role):
        return None

    my_score = compute_score(user)
    score = score_expression()
    ahead = await db.execute(
        select(func.count(User.id)).where(
            *_category_filters(category),
            or_(score > my_score, and_(score == my_score, User.id < user.id)),
        )
    )
    rank = int(ahead.scalar_one()) + 1

    return {
        "category": category,
        "rank": rank,
        "score": my_score,
        "user_id": user.id,
        "name": user.name,
        "role": user.role,
        "coins": user.coins,
        "xp": user.xp,
        "level": user.level,
    }
