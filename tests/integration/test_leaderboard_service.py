"""Score SQL/Python agreement and live leaderboard queries."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import User
from nextmcq.exceptions import InvalidCategoryError
from nextmcq.ranking.leaderboard_service import fetch_ranked_users, get_leaderboard, get_user_rank
from nextmcq.ranking.scoring import compute_score, score_expression
from tests.factories import build_user, create_ranked_students, create_user

COUNTER_CASES = [
    {"role": "student"},
    {"role": "student", "total_tests": 3, "correct_answers": 1, "total_questions": 8},
    {"role": "student", "total_tests": 1, "correct_answers": 1, "total_questions": 3},
    {"role": "student", "total_tests": 2, "correct_answers": 2, "total_questions": 3},
    {"role": "student", "total_tests": 12, "correct_answers": 97, "total_questions": 120},
    {"role": "student", "total_tests": 0, "correct_answers": 0, "total_questions": 40},
    {"role": "teacher"},
    {"role": "teacher", "tests_created": 7, "total_attempts_of_students": 311},
    {"role": "teacher", "tests_created": 2, "total_questions": 10, "correct_answers": 10},
]


class TestScoreExpression:
    @pytest.mark.asyncio
    async def test_sql_matches_python(self, db_session: AsyncSession):
        users = [build_user(**counters) for counters in COUNTER_CASES]
        db_session.add_all(users)
        await db_session.commit()

        result = await db_session.execute(select(User.id, score_expression().label("score")))
        sql_scores = {row.id: int(row.score) for row in result}

        for user in users:
            assert sql_scores[user.id] == compute_score(user), user.email


class TestFetchRankedUsers:
    @pytest.mark.asyncio
    async def test_ranks_dense_and_ordered(self, db_session: AsyncSession):
        students = await create_ranked_students(db_session, 5)
        ranked = await fetch_ranked_users(db_session, "students", limit=10)
        assert [e["user_id"] for e in ranked] == [u.id for u in students]
        assert [e["rank"] for e in ranked] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_equal_scores_ordered_by_id(self, db_session: AsyncSession):
        users = [build_user(role="student") for _ in range(4)]
        db_session.add_all(users)
        await db_session.commit()

        ranked = await fetch_ranked_users(db_session, "students", limit=10)
        assert [e["user_id"] for e in ranked] == sorted(u.id for u in users)
        assert [e["rank"] for e in ranked] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_excludes_inactive_and_other_role(self, db_session: AsyncSession):
        active = await create_user(db_session, role="student", total_tests=1)
        await create_user(db_session, role="student", total_tests=5, is_active=False)
        await create_user(db_session, role="teacher", tests_created=9)

        ranked = await fetch_ranked_users(db_session, "students", limit=10)
        assert [e["user_id"] for e in ranked] == [active.id]

    @pytest.mark.asyncio
    async def test_offset_shifts_ranks(self, db_session: AsyncSession):
        students = await create_ranked_students(db_session, 6)
        ranked = await fetch_ranked_users(db_session, "students", limit=2, offset=4)
        assert [(e["user_id"], e["rank"]) for e in ranked] == [(students[4].id, 5), (students[5].id, 6)]

    @pytest.mark.asyncio
    async def test_invalid_category(self, db_session: AsyncSession):
        with pytest.raises(InvalidCategoryError):
            await fetch_ranked_users(db_session, "parents", limit=10)


class TestLeaderboard:
    @pytest.mark.asyncio
    async def test_pagination(self, db_session: AsyncSession):
        await create_ranked_students(db_session, 7)
        page = await get_leaderboard(db_session, "students", page=2, limit=3)
        assert [e["rank"] for e in page["leaderboard"]] == [4, 5, 6]
        assert page["pagination"] == {
            "current_page": 2,
            "total_pages": 3,
            "total_users": 7,
            "has_next": True,
            "has_prev": True,
        }

    @pytest.mark.asyncio
    async def test_limit_capped(self, db_session: AsyncSession):
        await create_ranked_students(db_session, 3)
        page = await get_leaderboard(db_session, "students", page=1, limit=500)
        assert page["pagination"]["total_pages"] == 1
        assert page["pagination"]["has_next"] is False

    @pytest.mark.asyncio
    async def test_global_mixes_roles(self, db_session: AsyncSession):
        student = await create_user(db_session, role="student", total_tests=2)
        teacher = await create_user(db_session, role="teacher", tests_created=5)
        page = await get_leaderboard(db_session, "global")
        assert [e["user_id"] for e in page["leaderboard"]] == [teacher.id, student.id]


class TestUserRank:
    @pytest.mark.asyncio
    async def test_matches_leaderboard(self, db_session: AsyncSession):
        students = await create_ranked_students(db_session, 5)
        result = await get_user_rank(db_session, students[3], "students")
        assert result["rank"] == 4
        assert result["score"] == compute_score(students[3])

    @pytest.mark.asyncio
    async def test_tie_uses_id(self, db_session: AsyncSession):
        first = await create_user(db_session, role="student", total_tests=3)
        second = await create_user(db_session, role="student", total_tests=3)
        assert (await get_user_rank(db_session, first, "students"))["rank"] == 1
        assert (await get_user_rank(db_session, second, "students"))["rank"] == 2

    @pytest.mark.asyncio
    async def test_wrong_category_is_none(self, db_session: AsyncSession):
        teacher = await create_user(db_session, role="teacher")
        assert await get_user_rank(db_session, teacher, "students") is None
