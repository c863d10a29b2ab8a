"""Ranking score formula.

One constant table, two adapters: ``compute_score`` evaluates a fetched user
in-process, ``score_expression`` builds the equivalent SQL expression so the
database can sort by it. Accuracy is rounded half-up with integer arithmetic
on both sides, so the two can never disagree.
"""

from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy import case
from sqlalchemy.sql.elements import ColumnElement

from nextmcq.db.models import User
from nextmcq.exceptions import InvalidCategoryError

TESTS_WEIGHT = 10
ACCURACY_WEIGHT = 10
TEACHER_TESTS_WEIGHT = 10
TEACHER_ATTEMPTS_WEIGHT = 10

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"

CATEGORY_ROLES: dict[str, str | None] = {
    "global": None,
    "students": ROLE_STUDENT,
    "teachers": ROLE_TEACHER,
}
REWARD_CATEGORIES = ("students", "teachers")


class ScoredUser(Protocol):
    role: str
    total_tests: int
    correct_answers: int
    total_questions: int
    tests_created: int
    total_attempts_of_students: int


def accuracy_percent(correct_answers: int, total_questions: int) -> int:
    """Accuracy as a whole percentage, rounded half-up. 0 when nothing was answered."""
    if total_questions <= 0:
        return 0
    return (200 * correct_answers + total_questions) // (2 * total_questions)


def student_score(total_tests: int, correct_answers: int, total_questions: int) -> int:
    return total_tests * TESTS_WEIGHT + accuracy_percent(correct_answers, total_questions) * ACCURACY_WEIGHT


def teacher_score(tests_created: int, total_attempts_of_students: int) -> int:
    return tests_created * TEACHER_TESTS_WEIGHT + total_attempts_of_students * TEACHER_ATTEMPTS_WEIGHT


def compute_score(user: ScoredUser | Any) -> int:
    """Score a user object (ORM row or anything with the counter attributes)."""
    if user.role == ROLE_STUDENT:
        return student_score(user.total_tests or 0, user.correct_answers or 0, user.total_questions or 0)
    return teacher_score(user.tests_created or 0, user.total_attempts_of_students or 0)


def score_expression() -> ColumnElement[int]:
    """SQL mirror of ``compute_score`` over the users table."""
    accuracy = case(
        (User.total_questions == 0, 0),
        else_=(200 * User.correct_answers + User.total_questions) // (2 * User.total_questions),
    )
    student = User.total_tests * TESTS_WEIGHT + accuracy * ACCURACY_WEIGHT
    teacher = User.tests_created * TEACHER_TESTS_WEIGHT + User.total_attempts_of_students * TEACHER_ATTEMPTS_WEIGHT
    return case((User.role == ROLE_STUDENT, student), else_=teacher)


def role_for_category(category: str) -> str | None:
    """Map a ranking category to the user role it ranks (None for global)."""
    try:
        return CATEGORY_ROLES[category]
    except KeyError:
        raise InvalidCategoryError(category) from None
