from __future__ import annotations

import logging
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from closer_club.models.course import Course, CourseModule, Enrollment, Lesson
from closer_club.models.quiz import CompletedQuizAssignment
from closer_club.repos.completion_repo import InMemoryCompletionRepo
from closer_club.repos.course_repo import InMemoryCourseRepo
from closer_club.repos.quiz_repo import InMemoryQuizRepo
from closer_club.services.progress_service import (
    get_course_progress,
    get_student_progress,
    percentage,
    round_half_up,
)


@pytest.mark.parametrize(
    "value,expected", [(62.5, 63), (62.49, 62), (0.5, 1), (99.5, 100), (33.33, 33)]
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


def test_percentage_of_nothing_is_zero() -> None:
    assert percentage(0, 0) == 0
    assert percentage(3, 0) == 0


class _ExplodingCourses(InMemoryCourseRepo):
    async def count_lessons(self, course_id):
        raise RuntimeError("db gone")

    async def list_enrolled_courses(self, student_id):
        raise RuntimeError("db gone")


async def _course_with(courses: InMemoryCourseRepo, n_lessons: int) -> tuple[Course, list[Lesson]]:
    course = Course.new(name="C", slug="c")
    module = CourseModule.new(course_id=course.id, name="M", position=0)
    await courses.add_course(course)
    await courses.add_module(module)
    lessons = []
    for pos in range(n_lessons):
        lesson = Lesson.new(module_id=module.id, name=f"L{pos}", position=pos)
        await courses.add_lesson(lesson)
        lessons.append(lesson)
    return course, lessons


async def test_completed_count_is_distinct_lessons() -> None:
    courses = InMemoryCourseRepo()
    completions = InMemoryCompletionRepo(courses)
    course, lessons = await _course_with(courses, 4)
    for _ in range(2):
        # a second pass on the same lesson is not stored
        await completions.add_if_absent(
            CompletedQuizAssignment.new(
                quiz_id=uuid4(),
                lesson_id=lessons[0].id,
                student_id="s1",
                selected_answers=(0,),
                number_of_questions=1,
                total_correct_answers=1,
            )
        )

    result = await get_course_progress(courses, completions, student_id="s1", course_id=course.id)
    assert result.success is True
    assert result.completed_lessons == 1
    assert result.progress_percentage == 25


async def test_course_failure_is_logged_and_counted(caplog: pytest.LogCaptureFixture) -> None:
    courses = _ExplodingCourses()
    completions = InMemoryCompletionRepo(courses)
    before = REGISTRY.get_sample_value(
        "progress_aggregation_failures_total", {"scope": "course"}
    ) or 0.0

    with caplog.at_level(logging.ERROR, logger="closer_club.services.progress_service"):
        result = await get_course_progress(
            courses, completions, student_id="s1", course_id=uuid4()
        )

    assert result.success is False
    assert (result.total_lessons, result.completed_lessons, result.progress_percentage) == (0, 0, 0)
    assert any("aggregation failed" in r.getMessage() for r in caplog.records)
    after = REGISTRY.get_sample_value("progress_aggregation_failures_total", {"scope": "course"})
    assert after - before == 1


async def test_student_failure_returns_empty_result() -> None:
    courses = _ExplodingCourses()
    result = await get_student_progress(
        courses, InMemoryQuizRepo(courses), InMemoryCompletionRepo(courses), student_id="s1"
    )
    assert result.success is False
    assert result.courses == []
    assert result.summary.total_enrolled_courses == 0


async def test_student_progress_counts_only_enrolled_courses() -> None:
    courses = InMemoryCourseRepo()
    enrolled, _ = await _course_with(courses, 2)
    await _course_with(courses, 3)
    await courses.enroll(Enrollment.new(student_id="s1", course_id=enrolled.id))

    result = await get_student_progress(
        courses, InMemoryQuizRepo(courses), InMemoryCompletionRepo(courses), student_id="s1"
    )
    assert [c.id for c in result.courses] == [enrolled.id]
    assert result.summary.total_lessons == 2
