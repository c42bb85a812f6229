"""PostgreSQL implementation of QuizRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from closer_club.db.tables import CourseModuleRow, LessonRow, QuizRow
from closer_club.models.quiz import Question, Quiz


class PgQuizRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, quiz_id: UUID) -> Quiz | None:
        row = await self._session.get(QuizRow, quiz_id)
        return _row_to_quiz(row) if row is not None else None

    async def get_by_lesson(self, lesson_id: UUID) -> Quiz | None:
        stmt = (
            select(QuizRow)
            .where(QuizRow.lesson_id == lesson_id)
            .order_by(QuizRow.created_at)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_quiz(row) if row is not None else None

    async def list_all(self) -> list[Quiz]:
        stmt = select(QuizRow).order_by(QuizRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_quiz(r) for r in rows]

    async def count_for_course(self, course_id: UUID) -> int:
        stmt = (
            select(func.count(QuizRow.id))
            .join(LessonRow, QuizRow.lesson_id == LessonRow.id)
            .join(CourseModuleRow, LessonRow.module_id == CourseModuleRow.id)
            .where(CourseModuleRow.course_id == course_id)
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def add(self, quiz: Quiz) -> None:
        self._session.add(
            QuizRow(
                id=quiz.id,
                lesson_id=quiz.lesson_id,
                questions=[q.to_dict() for q in quiz.questions],
                created_at=quiz.created_at,
                updated_at=quiz.updated_at,
            )
        )
        await self._session.flush()

    async def update(self, quiz: Quiz) -> Quiz | None:
        stmt = (
            update(QuizRow)
            .where(QuizRow.id == quiz.id)
            .values(
                lesson_id=quiz.lesson_id,
                questions=[q.to_dict() for q in quiz.questions],
                updated_at=quiz.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return quiz

    async def delete(self, quiz_id: UUID) -> bool:
        result = await self._session.execute(delete(QuizRow).where(QuizRow.id == quiz_id))
        return result.rowcount > 0


def _row_to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        lesson_id=row.lesson_id,
        questions=tuple(Question.from_dict(q) for q in row.questions),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
