"""PostgreSQL implementation of CompletionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from closer_club.db.tables import CompletedQuizAssignmentRow, CourseModuleRow, LessonRow
from closer_club.models.quiz import CompletedQuizAssignment


class PgCompletionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_for_lesson(
        self, student_id: str, lesson_id: UUID
    ) -> CompletedQuizAssignment | None:
        stmt = select(CompletedQuizAssignmentRow).where(
            CompletedQuizAssignmentRow.student_id == student_id,
            CompletedQuizAssignmentRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_completion(row) if row is not None else None

    async def add_if_absent(self, completion: CompletedQuizAssignment) -> bool:
        # the (student_id, lesson_id) unique constraint arbitrates races
        # between two concurrent passing submissions
        stmt = (
            insert(CompletedQuizAssignmentRow)
            .values(
                id=completion.id,
                quiz_id=completion.quiz_id,
                student_id=completion.student_id,
                lesson_id=completion.lesson_id,
                selected_answers=list(completion.selected_answers),
                number_of_questions=completion.number_of_questions,
                total_correct_answers=completion.total_correct_answers,
                created_at=completion.created_at,
            )
            .on_conflict_do_nothing(index_elements=["student_id", "lesson_id"])
            .returning(CompletedQuizAssignmentRow.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        return inserted is not None

    async def list_for_course(
        self, student_id: str, course_id: UUID
    ) -> list[CompletedQuizAssignment]:
        stmt = (
            select(CompletedQuizAssignmentRow)
            .join(LessonRow, CompletedQuizAssignmentRow.lesson_id == LessonRow.id)
            .join(CourseModuleRow, LessonRow.module_id == CourseModuleRow.id)
            .where(
                CourseModuleRow.course_id == course_id,
                CompletedQuizAssignmentRow.student_id == student_id,
            )
            .order_by(CompletedQuizAssignmentRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_completion(r) for r in rows]

    async def count_completed_lessons(self, student_id: str, course_id: UUID) -> int:
        stmt = (
            select(func.count(CompletedQuizAssignmentRow.id))
            .join(LessonRow, CompletedQuizAssignmentRow.lesson_id == LessonRow.id)
            .join(CourseModuleRow, LessonRow.module_id == CourseModuleRow.id)
            .where(
                CourseModuleRow.course_id == course_id,
                CompletedQuizAssignmentRow.student_id == student_id,
            )
        )
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_completion(row: CompletedQuizAssignmentRow) -> CompletedQuizAssignment:
    return CompletedQuizAssignment(
        id=row.id,
        quiz_id=row.quiz_id,
        lesson_id=row.lesson_id,
        student_id=row.student_id,
        selected_answers=tuple(row.selected_answers or ()),
        number_of_questions=row.number_of_questions,
        total_correct_answers=row.total_correct_answers,
        created_at=row.created_at,
    )
