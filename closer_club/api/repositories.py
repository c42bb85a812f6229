"""Per-request repository wiring.

Without DATABASE_URL, every request shares the module-level in-memory
repositories below (tests reset them between cases).  With it, each
request gets Pg repositories bound to one session that commits when the
handler returns and rolls back if it raises.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends

from closer_club.db import engine as db_engine
from closer_club.repos.completion_repo import CompletionRepo, InMemoryCompletionRepo
from closer_club.repos.course_repo import CourseRepo, InMemoryCourseRepo
from closer_club.repos.pg_completion_repo import PgCompletionRepo
from closer_club.repos.pg_course_repo import PgCourseRepo
from closer_club.repos.pg_quiz_repo import PgQuizRepo
from closer_club.repos.quiz_repo import InMemoryQuizRepo, QuizRepo

course_repo = InMemoryCourseRepo()
quiz_repo = InMemoryQuizRepo(course_repo)
completion_repo = InMemoryCompletionRepo(course_repo)


@dataclass(frozen=True, slots=True)
class Repos:
    courses: CourseRepo
    quizzes: QuizRepo
    completions: CompletionRepo


def in_memory_repos() -> Repos:
    return Repos(courses=course_repo, quizzes=quiz_repo, completions=completion_repo)


def reset_in_memory_repos() -> None:
    completion_repo.clear()
    quiz_repo.clear()
    course_repo.clear()


async def get_repos() -> AsyncGenerator[Repos, None]:
    factory = db_engine.async_session_factory
    if factory is None:
        yield in_memory_repos()
        return

    async with factory() as session:
        try:
            yield Repos(
                courses=PgCourseRepo(session),
                quizzes=PgQuizRepo(session),
                completions=PgCompletionRepo(session),
            )
        except Exception:
            await session.rollback()
            raise
        # a failed read that was handled (progress aggregation) leaves the
        # transaction unusable; there is nothing to commit in that case
        if session.is_active:
            await session.commit()
        else:
            await session.rollback()


ReposDep = Annotated[Repos, Depends(get_repos)]
