from __future__ import annotations

import time
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    name: str
    slug: str
    description: str = ""
    position: int = 0

    @staticmethod
    def new(*, name: str, slug: str, description: str = "", position: int = 0) -> Course:
        return Course(
            id=uuid4(), name=name, slug=slug, description=description, position=position
        )


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    name: str
    position: int

    @staticmethod
    def new(*, course_id: UUID, name: str, position: int) -> CourseModule:
        return CourseModule(id=uuid4(), course_id=course_id, name=name, position=position)


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    module_id: UUID
    name: str
    position: int
    video_url: str = ""

    @staticmethod
    def new(
        *, module_id: UUID, name: str, position: int, video_url: str = ""
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            module_id=module_id,
            name=name,
            position=position,
            video_url=video_url,
        )


@dataclass(frozen=True, slots=True)
class Enrollment:
    """A student assigned to a course (``student_courses``)."""

    student_id: str
    course_id: UUID
    enrolled_at: int  # unix seconds

    @staticmethod
    def new(*, student_id: str, course_id: UUID) -> Enrollment:
        return Enrollment(
            student_id=student_id, course_id=course_id, enrolled_at=int(time.time())
        )
