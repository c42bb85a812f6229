"""Progress aggregation.

Lesson completion is derived, never stored: a lesson counts as completed
for a student once a CompletedQuizAssignment exists for it.  Per course:

    totalLessons       lessons whose module belongs to the course
    completedLessons   completion rows for the student in that course
    progressPercentage round(completed / total * 100), 0 for an empty course

The student view adds quiz analytics per course and a summary across all
enrolled courses.  Courses are aggregated one after another with no
caching; every request recomputes from the repositories.

Aggregation never raises on a repository failure: it is logged and counted and
the caller gets ``success=False`` with zeroed fields.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from uuid import UUID

from closer_club.core.errors import NotFoundError
from closer_club.core.metrics import PROGRESS_AGGREGATION_FAILURES
from closer_club.models.course import Course
from closer_club.repos.completion_repo import CompletionRepo
from closer_club.repos.course_repo import CourseRepo
from closer_club.repos.quiz_repo import QuizRepo

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    # round() is banker's rounding; 62.5 must give 63
    return math.floor(value + 0.5)


def percentage(part: int | float, whole: int | float) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def progress_percentage(completed_lessons: int, total_lessons: int) -> int:
    return percentage(completed_lessons, total_lessons)


def _mean_rounded(values: list[int]) -> int:
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


@dataclass(frozen=True, slots=True)
class CourseProgress:
    success: bool
    total_lessons: int = 0
    completed_lessons: int = 0
    progress_percentage: int = 0


@dataclass(frozen=True, slots=True)
class QuizAnalytics:
    total_quizzes: int = 0
    completed_quizzes: int = 0
    quiz_completion_percentage: int = 0
    average_quiz_score: int = 0
    total_questions_answered: int = 0
    total_correct_answers: int = 0
    overall_accuracy: int = 0


@dataclass(frozen=True, slots=True)
class CourseProgressDetail:
    id: UUID
    name: str
    slug: str
    description: str
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    total_quizzes: int
    completed_quizzes: int
    quiz_completion_percentage: int
    average_quiz_score: int
    total_questions_answered: int
    total_correct_answers: int
    overall_accuracy: int


@dataclass(frozen=True, slots=True)
class ProgressSummary:
    total_enrolled_courses: int = 0
    average_progress: int = 0
    total_lessons: int = 0
    total_completed_lessons: int = 0
    total_quizzes: int = 0
    total_completed_quizzes: int = 0
    average_quiz_completion_rate: int = 0
    overall_average_quiz_score: int = 0
    total_questions_answered: int = 0
    total_correct_answers: int = 0
    overall_accuracy: int = 0


@dataclass(frozen=True, slots=True)
class StudentProgress:
    success: bool
    student_id: str
    courses: list[CourseProgressDetail] = field(default_factory=list)
    summary: ProgressSummary = field(default_factory=ProgressSummary)


async def _course_counts(
    courses: CourseRepo, completions: CompletionRepo, student_id: str, course_id: UUID
) -> tuple[int, int]:
    total = await courses.count_lessons(course_id)
    completed = await completions.count_completed_lessons(student_id, course_id)
    return total, completed


async def get_course_progress(
    courses: CourseRepo,
    completions: CompletionRepo,
    *,
    student_id: str,
    course_id: UUID,
    require_course: bool = False,
) -> CourseProgress:
    """Lesson counts for one course.

    With ``require_course`` an unknown course raises NotFoundError; the
    lookup itself sits inside the same failure guard as the counts.
    """
    try:
        if require_course and await courses.get_course(course_id) is None:
            raise NotFoundError("Course not found")
        total, completed = await _course_counts(
            courses, completions, student_id, course_id
        )
    except NotFoundError:
        raise
    except Exception:
        logger.exception(
            "Course progress aggregation failed for student=%s",
            student_id,
            extra={"course_id": str(course_id)},
        )
        PROGRESS_AGGREGATION_FAILURES.labels(scope="course").inc()
        return CourseProgress(success=False)

    return CourseProgress(
        success=True,
        total_lessons=total,
        completed_lessons=completed,
        progress_percentage=progress_percentage(completed, total),
    )


async def get_quiz_analytics(
    quizzes: QuizRepo,
    completions: CompletionRepo,
    *,
    student_id: str,
    course_id: UUID,
) -> QuizAnalytics:
    total_quizzes = await quizzes.count_for_course(course_id)
    rows = await completions.list_for_course(student_id, course_id)

    questions_answered = sum(r.number_of_questions for r in rows)
    correct_answers = sum(r.total_correct_answers for r in rows)
    scores = [
        r.total_correct_answers / r.number_of_questions * 100
        if r.number_of_questions > 0
        else 0.0
        for r in rows
    ]
    average_score = round_half_up(sum(scores) / len(scores)) if scores else 0

    return QuizAnalytics(
        total_quizzes=total_quizzes,
        completed_quizzes=len(rows),
        quiz_completion_percentage=percentage(len(rows), total_quizzes),
        average_quiz_score=average_score,
        total_questions_answered=questions_answered,
        total_correct_answers=correct_answers,
        overall_accuracy=percentage(correct_answers, questions_answered),
    )


async def _course_detail(
    courses: CourseRepo,
    quizzes: QuizRepo,
    completions: CompletionRepo,
    student_id: str,
    course: Course,
) -> CourseProgressDetail:
    total, completed = await _course_counts(courses, completions, student_id, course.id)
    quiz = await get_quiz_analytics(
        quizzes, completions, student_id=student_id, course_id=course.id
    )
    return CourseProgressDetail(
        id=course.id,
        name=course.name,
        slug=course.slug,
        description=course.description,
        total_lessons=total,
        completed_lessons=completed,
        progress_percentage=progress_percentage(completed, total),
        total_quizzes=quiz.total_quizzes,
        completed_quizzes=quiz.completed_quizzes,
        quiz_completion_percentage=quiz.quiz_completion_percentage,
        average_quiz_score=quiz.average_quiz_score,
        total_questions_answered=quiz.total_questions_answered,
        total_correct_answers=quiz.total_correct_answers,
        overall_accuracy=quiz.overall_accuracy,
    )


def summarize(details: list[CourseProgressDetail]) -> ProgressSummary:
    questions_answered = sum(d.total_questions_answered for d in details)
    correct_answers = sum(d.total_correct_answers for d in details)
    return ProgressSummary(
        total_enrolled_courses=len(details),
        average_progress=_mean_rounded([d.progress_percentage for d in details]),
        total_lessons=sum(d.total_lessons for d in details),
        total_completed_lessons=sum(d.completed_lessons for d in details),
        total_quizzes=sum(d.total_quizzes for d in details),
        total_completed_quizzes=sum(d.completed_quizzes for d in details),
        average_quiz_completion_rate=_mean_rounded(
            [d.quiz_completion_percentage for d in details]
        ),
        overall_average_quiz_score=_mean_rounded(
            [d.average_quiz_score for d in details]
        ),
        total_questions_answered=questions_answered,
        total_correct_answers=correct_answers,
        overall_accuracy=percentage(correct_answers, questions_answered),
    )


async def get_student_progress(
    courses: CourseRepo,
    quizzes: QuizRepo,
    completions: CompletionRepo,
    *,
    student_id: str,
) -> StudentProgress:
    """Progress for every course the student is enrolled in, plus a summary."""
    try:
        enrolled = await courses.list_enrolled_courses(student_id)
        details = []
        # one course at a time; see module docstring
        for course in enrolled:
            details.append(
                await _course_detail(courses, quizzes, completions, student_id, course)
            )
    except Exception:
        logger.exception("Student progress aggregation failed for student=%s", student_id)
        PROGRESS_AGGREGATION_FAILURES.labels(scope="student").inc()
        return StudentProgress(success=False, student_id=student_id)

    return StudentProgress(
        success=True,
        student_id=student_id,
        courses=details,
        summary=summarize(details),
    )
