from __future__ import annotations

from typing import Protocol
from uuid import UUID

from closer_club.models.quiz import CompletedQuizAssignment
from closer_club.repos.course_repo import InMemoryCourseRepo


class CompletionRepo(Protocol):
    async def get_for_lesson(
        self, student_id: str, lesson_id: UUID
    ) -> CompletedQuizAssignment | None: ...
    async def add_if_absent(self, completion: CompletedQuizAssignment) -> bool: ...
    async def list_for_course(
        self, student_id: str, course_id: UUID
    ) -> list[CompletedQuizAssignment]: ...
    async def count_completed_lessons(self, student_id: str, course_id: UUID) -> int: ...


class InMemoryCompletionRepo:
    """Completion rows keyed by (student_id, lesson_id).

    Only one row may exist per key, matching the unique constraint on
    ``completed_quiz_assignments``.
    """

    def __init__(self, courses: InMemoryCourseRepo) -> None:
        self._courses = courses
        self._rows: dict[tuple[str, UUID], CompletedQuizAssignment] = {}

    def clear(self) -> None:
        self._rows.clear()

    async def get_for_lesson(
        self, student_id: str, lesson_id: UUID
    ) -> CompletedQuizAssignment | None:
        return self._rows.get((student_id, lesson_id))

    async def add_if_absent(self, completion: CompletedQuizAssignment) -> bool:
        key = (completion.student_id, completion.lesson_id)
        if key in self._rows:
            return False
        self._rows[key] = completion
        return True

    async def list_for_course(
        self, student_id: str, course_id: UUID
    ) -> list[CompletedQuizAssignment]:
        rows = [
            row
            for (sid, lesson_id), row in self._rows.items()
            if sid == student_id
            and self._courses.course_of_lesson(lesson_id) == course_id
        ]
        return sorted(rows, key=lambda r: r.created_at)

    async def count_completed_lessons(self, student_id: str, course_id: UUID) -> int:
        return len(await self.list_for_course(student_id, course_id))
