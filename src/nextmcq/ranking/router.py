"""Live ranking API: leaderboard and the caller's own rank."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.auth.dependencies import get_current_user
from nextmcq.db.models import User
from nextmcq.dependencies import get_db
from nextmcq.ranking.leaderboard_service import MAX_PAGE_SIZE, get_leaderboard, get_user_rank
from nextmcq.ranking.schemas import LeaderboardResponse, UserRankResponse
from nextmcq.schemas import Envelope, ok

router = APIRouter(prefix="/api/v1/ranking", tags=["Ranking"])

_CATEGORY_PATTERN = "^(global|students|teachers)$"


@router.get("/leaderboard", response_model=Envelope[LeaderboardResponse])
async def leaderboard(
    category: str = Query("global", pattern=_CATEGORY_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Live leaderboard for a category."""
    data = await get_leaderboard(db, category, page, limit)
    return ok(LeaderboardResponse.model_validate(data))


@router.get("/user-rank", response_model=Envelope[UserRankResponse])
async def user_rank(
    category: str = Query("global", pattern=_CATEGORY_PATTERN),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's live rank and score."""
    data = await get_user_rank(db, current_user, category)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Not ranked in category '{category}'")
    return ok(UserRankResponse.model_validate(data))
