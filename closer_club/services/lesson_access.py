"""Sequential unlocking of modules and lessons.

A module is open when it is the first in its course or every lesson of
the module before it has a completed quiz (an empty module counts as
finished).  Inside an open module, a lesson is open when it is the first
one or the lesson before it has a completed quiz.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from closer_club.core.errors import NotFoundError
from closer_club.models.course import CourseModule, Lesson
from closer_club.repos.completion_repo import CompletionRepo
from closer_club.repos.course_repo import CourseRepo
from closer_club.services.progress_service import progress_percentage


class LessonStatus(StrEnum):
    LOCKED = "locked"
    COMPLETED = "completed"
    CURRENT = "current"
    ACCESSIBLE = "accessible"


@dataclass(frozen=True, slots=True)
class LessonStatusItem:
    lesson_id: UUID
    lesson_name: str
    position: int
    status: LessonStatus
    can_access: bool


@dataclass(frozen=True, slots=True)
class ModuleLessonStatuses:
    module_id: UUID
    module_name: str
    accessible: bool
    lessons: list[LessonStatusItem]


@dataclass(frozen=True, slots=True)
class LessonAccess:
    can_access: bool
    reason: str
    required_lesson_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class ModuleProgress:
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    next_accessible_lesson_id: UUID | None


async def _completed_lesson_ids(
    completions: CompletionRepo, student_id: str, course_id: UUID
) -> set[UUID]:
    rows = await completions.list_for_course(student_id, course_id)
    return {r.lesson_id for r in rows}


def _lesson_statuses(
    lessons: list[Lesson],
    completed: set[UUID],
    *,
    module_open: bool,
    current_lesson_id: UUID | None,
) -> list[LessonStatusItem]:
    items = []
    previous_done = True
    for lesson in lessons:
        can_access = module_open and previous_done
        if not can_access:
            status = LessonStatus.LOCKED
        elif lesson.id in completed:
            status = LessonStatus.COMPLETED
        elif lesson.id == current_lesson_id:
            status = LessonStatus.CURRENT
        else:
            status = LessonStatus.ACCESSIBLE
        items.append(
            LessonStatusItem(
                lesson_id=lesson.id,
                lesson_name=lesson.name,
                position=lesson.position,
                status=status,
                can_access=can_access,
            )
        )
        previous_done = lesson.id in completed
    return items


async def _modules_with_lessons(
    courses: CourseRepo, course_id: UUID
) -> list[tuple[CourseModule, list[Lesson]]]:
    return [
        (module, await courses.list_lessons(module.id))
        for module in await courses.list_modules(course_id)
    ]


def _open_flags(
    modules: list[tuple[CourseModule, list[Lesson]]], completed: set[UUID]
) -> list[bool]:
    flags = []
    for index, _ in enumerate(modules):
        if index == 0:
            flags.append(True)
            continue
        _, previous_lessons = modules[index - 1]
        flags.append(all(les.id in completed for les in previous_lessons))
    return flags


async def get_lesson_statuses(
    courses: CourseRepo,
    completions: CompletionRepo,
    *,
    student_id: str,
    course_id: UUID,
    current_lesson_id: UUID | None = None,
) -> list[ModuleLessonStatuses]:
    if await courses.get_course(course_id) is None:
        raise NotFoundError("Course not found")

    completed = await _completed_lesson_ids(completions, student_id, course_id)
    modules = await _modules_with_lessons(courses, course_id)
    return [
        ModuleLessonStatuses(
            module_id=module.id,
            module_name=module.name,
            accessible=module_open,
            lessons=_lesson_statuses(
                lessons,
                completed,
                module_open=module_open,
                current_lesson_id=current_lesson_id,
            ),
        )
        for (module, lessons), module_open in zip(
            modules, _open_flags(modules, completed), strict=True
        )
    ]


async def check_lesson_access(
    courses: CourseRepo,
    completions: CompletionRepo,
    *,
    student_id: str,
    lesson_id: UUID,
) -> LessonAccess:
    lesson = await courses.get_lesson(lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    module = await courses.get_module(lesson.module_id)
    if module is None:
        raise NotFoundError("Lesson not found")

    completed = await _completed_lesson_ids(completions, student_id, module.course_id)
    modules = await _modules_with_lessons(courses, module.course_id)
    module_index = next(i for i, (m, _) in enumerate(modules) if m.id == module.id)

    if module_index > 0:
        _, previous_lessons = modules[module_index - 1]
        missing = [les for les in previous_lessons if les.id not in completed]
        if missing:
            return LessonAccess(
                can_access=False,
                reason="Previous module not completed",
                required_lesson_id=missing[0].id,
            )

    _, lessons = modules[module_index]
    lesson_index = next(i for i, les in enumerate(lessons) if les.id == lesson_id)
    if lesson_index == 0:
        return LessonAccess(can_access=True, reason="First lesson in accessible module")

    previous = lessons[lesson_index - 1]
    if previous.id not in completed:
        return LessonAccess(
            can_access=False,
            reason="Previous lesson quiz not completed",
            required_lesson_id=previous.id,
        )
    return LessonAccess(can_access=True, reason="Previous lesson quiz completed")


async def get_module_progress(
    courses: CourseRepo,
    completions: CompletionRepo,
    *,
    student_id: str,
    module_id: UUID,
) -> ModuleProgress:
    module = await courses.get_module(module_id)
    if module is None:
        raise NotFoundError("Module not found")

    lessons = await courses.list_lessons(module_id)
    completed = await _completed_lesson_ids(completions, student_id, module.course_id)
    done = sum(1 for les in lessons if les.id in completed)

    next_lesson_id = None
    previous_done = True
    for lesson in lessons:
        if previous_done and lesson.id not in completed:
            next_lesson_id = lesson.id
            break
        previous_done = lesson.id in completed

    return ModuleProgress(
        total_lessons=len(lessons),
        completed_lessons=done,
        progress_percentage=progress_percentage(done, len(lessons)),
        next_accessible_lesson_id=next_lesson_id,
    )
