from __future__ import annotations

from typing import Protocol
from uuid import UUID

from closer_club.models.course import Course, CourseModule, Enrollment, Lesson


class CourseRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def get_module(self, module_id: UUID) -> CourseModule | None: ...
    async def list_modules(self, course_id: UUID) -> list[CourseModule]: ...
    async def list_lessons(self, module_id: UUID) -> list[Lesson]: ...
    async def count_lessons(self, course_id: UUID) -> int: ...
    async def course_id_for_lesson(self, lesson_id: UUID) -> UUID | None: ...
    async def list_enrolled_courses(self, student_id: str) -> list[Course]: ...
    async def add_course(self, course: Course) -> None: ...
    async def add_module(self, module: CourseModule) -> None: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...
    async def enroll(self, enrollment: Enrollment) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._lessons: dict[UUID, Lesson] = {}
        self._enrollments: dict[tuple[str, UUID], Enrollment] = {}

    def clear(self) -> None:
        self._courses.clear()
        self._modules.clear()
        self._lessons.clear()
        self._enrollments.clear()

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        return self._modules.get(module_id)

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        modules = [m for m in self._modules.values() if m.course_id == course_id]
        return sorted(modules, key=lambda m: m.position)

    async def list_lessons(self, module_id: UUID) -> list[Lesson]:
        lessons = [les for les in self._lessons.values() if les.module_id == module_id]
        return sorted(lessons, key=lambda les: les.position)

    async def count_lessons(self, course_id: UUID) -> int:
        return sum(
            1
            for les in self._lessons.values()
            if self.course_of_lesson(les.id) == course_id
        )

    async def course_id_for_lesson(self, lesson_id: UUID) -> UUID | None:
        return self.course_of_lesson(lesson_id)

    async def list_enrolled_courses(self, student_id: str) -> list[Course]:
        courses = [
            self._courses[course_id]
            for (sid, course_id) in self._enrollments
            if sid == student_id and course_id in self._courses
        ]
        return sorted(courses, key=lambda c: (c.position, c.name))

    async def add_course(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course

    async def add_module(self, module: CourseModule) -> None:
        if module.course_id not in self._courses:
            raise KeyError("course not found")
        self._modules[module.id] = module

    async def add_lesson(self, lesson: Lesson) -> None:
        if lesson.module_id not in self._modules:
            raise KeyError("module not found")
        self._lessons[lesson.id] = lesson

    async def enroll(self, enrollment: Enrollment) -> None:
        key = (enrollment.student_id, enrollment.course_id)
        # re-enrolling keeps the original enrolled_at
        self._enrollments.setdefault(key, enrollment)

    def course_of_lesson(self, lesson_id: UUID) -> UUID | None:
        """Synchronous lesson -> module -> course walk, shared with the
        in-memory completion repo."""
        lesson = self._lessons.get(lesson_id)
        if lesson is None:
            return None
        module = self._modules.get(lesson.module_id)
        return module.course_id if module is not None else None
