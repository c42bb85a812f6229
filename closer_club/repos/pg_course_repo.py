"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from closer_club.db.tables import CourseModuleRow, CourseRow, LessonRow, StudentCourseRow
from closer_club.models.course import Course, CourseModule, Enrollment, Lesson


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        return _row_to_lesson(row) if row is not None else None

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        row = await self._session.get(CourseModuleRow, module_id)
        return _row_to_module(row) if row is not None else None

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        stmt = (
            select(CourseModuleRow)
            .where(CourseModuleRow.course_id == course_id)
            .order_by(CourseModuleRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_module(r) for r in rows]

    async def list_lessons(self, module_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.module_id == module_id)
            .order_by(LessonRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def count_lessons(self, course_id: UUID) -> int:
        stmt = (
            select(func.count(LessonRow.id))
            .join(CourseModuleRow, LessonRow.module_id == CourseModuleRow.id)
            .where(CourseModuleRow.course_id == course_id)
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def course_id_for_lesson(self, lesson_id: UUID) -> UUID | None:
        stmt = (
            select(CourseModuleRow.course_id)
            .join(LessonRow, LessonRow.module_id == CourseModuleRow.id)
            .where(LessonRow.id == lesson_id)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_enrolled_courses(self, student_id: str) -> list[Course]:
        stmt = (
            select(CourseRow)
            .join(StudentCourseRow, StudentCourseRow.course_id == CourseRow.id)
            .where(StudentCourseRow.student_id == student_id)
            .order_by(CourseRow.position, CourseRow.name)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def add_course(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                name=course.name,
                slug=course.slug,
                description=course.description,
                position=course.position,
            )
        )
        await self._session.flush()

    async def add_module(self, module: CourseModule) -> None:
        self._session.add(
            CourseModuleRow(
                id=module.id,
                course_id=module.course_id,
                name=module.name,
                position=module.position,
            )
        )
        await self._session.flush()

    async def add_lesson(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                module_id=lesson.module_id,
                name=lesson.name,
                position=lesson.position,
                video_url=lesson.video_url,
            )
        )
        await self._session.flush()

    async def enroll(self, enrollment: Enrollment) -> None:
        stmt = (
            insert(StudentCourseRow)
            .values(
                student_id=enrollment.student_id,
                course_id=enrollment.course_id,
                enrolled_at=enrollment.enrolled_at,
            )
            .on_conflict_do_nothing()
        )
        await self._session.execute(stmt)


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description or "",
        position=row.position,
    )


def _row_to_module(row: CourseModuleRow) -> CourseModule:
    return CourseModule(
        id=row.id, course_id=row.course_id, name=row.name, position=row.position
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        module_id=row.module_id,
        name=row.name,
        position=row.position,
        video_url=row.video_url or "",
    )
