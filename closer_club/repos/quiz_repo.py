from __future__ import annotations

from typing import Protocol
from uuid import UUID

from closer_club.models.quiz import Quiz
from closer_club.repos.course_repo import InMemoryCourseRepo


class QuizRepo(Protocol):
    async def get(self, quiz_id: UUID) -> Quiz | None: ...
    async def get_by_lesson(self, lesson_id: UUID) -> Quiz | None: ...
    async def list_all(self) -> list[Quiz]: ...
    async def count_for_course(self, course_id: UUID) -> int: ...
    async def add(self, quiz: Quiz) -> None: ...
    async def update(self, quiz: Quiz) -> Quiz | None: ...
    async def delete(self, quiz_id: UUID) -> bool: ...


class InMemoryQuizRepo:
    def __init__(self, courses: InMemoryCourseRepo) -> None:
        self._courses = courses
        self._by_id: dict[UUID, Quiz] = {}

    def clear(self) -> None:
        self._by_id.clear()

    async def get(self, quiz_id: UUID) -> Quiz | None:
        return self._by_id.get(quiz_id)

    async def get_by_lesson(self, lesson_id: UUID) -> Quiz | None:
        for quiz in self._by_id.values():
            if quiz.lesson_id == lesson_id:
                return quiz
        return None

    async def list_all(self) -> list[Quiz]:
        return sorted(self._by_id.values(), key=lambda q: q.created_at)

    async def count_for_course(self, course_id: UUID) -> int:
        return sum(
            1
            for q in self._by_id.values()
            if self._courses.course_of_lesson(q.lesson_id) == course_id
        )

    async def add(self, quiz: Quiz) -> None:
        if quiz.id in self._by_id:
            raise ValueError("quiz already exists")
        self._by_id[quiz.id] = quiz

    async def update(self, quiz: Quiz) -> Quiz | None:
        if quiz.id not in self._by_id:
            return None
        self._by_id[quiz.id] = quiz
        return quiz

    async def delete(self, quiz_id: UUID) -> bool:
        return self._by_id.pop(quiz_id, None) is not None
