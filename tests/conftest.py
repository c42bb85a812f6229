from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from closer_club.api.repositories import (
    completion_repo,
    course_repo,
    quiz_repo,
    reset_in_memory_repos,
)
from closer_club.main import app
from closer_club.models.course import Course, CourseModule, Enrollment, Lesson
from closer_club.models.principal import ROLE_ADMIN, ROLE_AGENT, ROLE_TEAM_LEADER
from closer_club.models.quiz import CompletedQuizAssignment, Question, Quiz
from closer_club.services import token_service

# Ensure repo root is on sys.path so `import closer_club` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the shared in-memory repositories between tests."""
    reset_in_memory_repos()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "agent-1",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def agent_token() -> str:
    return mint_token(username="agent-1", roles=[ROLE_AGENT])


@pytest.fixture
def leader_token() -> str:
    return mint_token(username="leader-1", roles=[ROLE_TEAM_LEADER])


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="admin-1", roles=[ROLE_ADMIN])


# ---------------------------------------------------------------------------
# Course seeding helpers (sync tests only; they drive the async in-memory
# repos with asyncio.run)
# ---------------------------------------------------------------------------


@dataclass
class SeededCourse:
    course: Course
    modules: list[CourseModule]
    lessons: list[list[Lesson]]  # per module, in position order

    @property
    def all_lessons(self) -> list[Lesson]:
        return [les for module_lessons in self.lessons for les in module_lessons]


async def _seed_course(
    lessons_per_module: list[int], name: str, enroll: list[str]
) -> SeededCourse:
    course = Course.new(name=name, slug=name.lower().replace(" ", "-"))
    await course_repo.add_course(course)
    modules: list[CourseModule] = []
    lessons: list[list[Lesson]] = []
    for m_pos, count in enumerate(lessons_per_module):
        module = CourseModule.new(course_id=course.id, name=f"Module {m_pos + 1}", position=m_pos)
        await course_repo.add_module(module)
        modules.append(module)
        module_lessons = []
        for l_pos in range(count):
            lesson = Lesson.new(
                module_id=module.id, name=f"Lesson {m_pos + 1}.{l_pos + 1}", position=l_pos
            )
            await course_repo.add_lesson(lesson)
            module_lessons.append(lesson)
        lessons.append(module_lessons)
    for student_id in enroll:
        await course_repo.enroll(Enrollment.new(student_id=student_id, course_id=course.id))
    return SeededCourse(course=course, modules=modules, lessons=lessons)


def seed_course(
    lessons_per_module: list[int],
    *,
    name: str = "Cold Calling",
    enroll: tuple[str, ...] = ("agent-1",),
) -> SeededCourse:
    return asyncio.run(_seed_course(lessons_per_module, name, list(enroll)))


def sample_questions(n: int = 3) -> tuple[Question, ...]:
    """``n`` questions whose correct indices cycle 1, 0, 2, 1, 0, 2, ..."""
    key = (1, 0, 2)
    return tuple(
        Question(
            title=f"Question {i + 1}",
            answers=("A", "B", "C"),
            correct_answer_index=key[i % 3],
        )
        for i in range(n)
    )


def seed_quiz(lesson_id: UUID, n_questions: int = 3) -> Quiz:
    quiz = Quiz.new(lesson_id=lesson_id, questions=sample_questions(n_questions))
    asyncio.run(quiz_repo.add(quiz))
    return quiz


def seed_completion(
    student_id: str, lesson_id: UUID, *, correct: int = 3, total: int = 3
) -> CompletedQuizAssignment:
    quiz = asyncio.run(quiz_repo.get_by_lesson(lesson_id)) or seed_quiz(lesson_id, total)
    completion = CompletedQuizAssignment.new(
        quiz_id=quiz.id,
        lesson_id=lesson_id,
        student_id=student_id,
        selected_answers=tuple(range(total)),
        number_of_questions=total,
        total_correct_answers=correct,
    )
    asyncio.run(completion_repo.add_if_absent(completion))
    return completion
