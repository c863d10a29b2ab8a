"""Pydantic schemas for leaderboard API responses."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    name: str
    role: str
    score: int
    level: int
    coins: int
    xp: int


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_users: int
    has_next: bool
    has_prev: bool


class LeaderboardResponse(BaseModel):
    category: str
    leaderboard: list[LeaderboardEntry]
    pagination: Pagination


class UserRankResponse(BaseModel):
    category: str
    rank: int
    score: int
    user_id: int
    name: str
    role: str
    coins: int
    xp: int
    level: int
