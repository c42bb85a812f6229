"""Quiz authoring, delivery and submission endpoints.

  Admin authoring   POST/GET/PUT/DELETE /v1/quizzes[/{quiz_id}]
  Delivery          GET  /v1/lessons/{lesson_id}/quiz
                    (answer key redacted unless the caller is an admin)
  Submission        POST /v1/quizzes/{quiz_id}/submit
  Completion        GET  /v1/lessons/{lesson_id}/completion
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, status

from closer_club.api.dependencies import (
    AdminPrincipal,
    AnyPrincipal,
    LearnerPrincipal,
)
from closer_club.api.repositories import ReposDep
from closer_club.api.schemas import (
    ActionResult,
    CompletionOut,
    IncorrectQuestionOut,
    LessonCompletionOut,
    QuizIn,
    QuizListItem,
    QuizOut,
    QuizSubmissionIn,
    QuizSubmissionOut,
)
from closer_club.core.errors import ClubError, NotFoundError, ValidationFailure
from closer_club.models.quiz import Quiz
from closer_club.services import grading

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["quizzes"])


class LessonAlreadyHasQuiz(ClubError):
    status_code = status.HTTP_409_CONFLICT


# ---------------------------------------------------------------------------
# Admin authoring
# ---------------------------------------------------------------------------


async def _require_lesson(repos, lesson_id: UUID) -> None:
    if await repos.courses.get_lesson(lesson_id) is None:
        raise NotFoundError("Lesson not found")


@router.post("/quizzes", response_model=QuizOut, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    body: QuizIn, principal: AdminPrincipal, repos: ReposDep
) -> QuizOut:
    questions = tuple(q.to_domain() for q in body.questions)
    grading.validate_questions(questions)
    await _require_lesson(repos, body.lesson_id)
    if await repos.quizzes.get_by_lesson(body.lesson_id) is not None:
        raise LessonAlreadyHasQuiz("This lesson already has a quiz")

    quiz = Quiz.new(lesson_id=body.lesson_id, questions=questions)
    await repos.quizzes.add(quiz)
    logger.info(
        "Quiz %s created for lesson %s by admin=%s",
        quiz.id,
        quiz.lesson_id,
        principal.user_id,
    )
    return QuizOut.from_domain(quiz)


@router.get("/quizzes", response_model=list[QuizListItem])
async def list_quizzes(_principal: AdminPrincipal, repos: ReposDep) -> list[QuizListItem]:
    items = []
    for quiz in await repos.quizzes.list_all():
        lesson = await repos.courses.get_lesson(quiz.lesson_id)
        items.append(
            QuizListItem(
                **QuizOut.from_domain(quiz).model_dump(),
                lesson_name=lesson.name if lesson is not None else None,
            )
        )
    return items


@router.get("/quizzes/{quiz_id}", response_model=QuizOut)
async def get_quiz(quiz_id: UUID, _principal: AdminPrincipal, repos: ReposDep) -> QuizOut:
    quiz = await repos.quizzes.get(quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz not found")
    return QuizOut.from_domain(quiz)


@router.put("/quizzes/{quiz_id}", response_model=QuizOut)
async def update_quiz(
    quiz_id: UUID, body: QuizIn, principal: AdminPrincipal, repos: ReposDep
) -> QuizOut:
    existing = await repos.quizzes.get(quiz_id)
    if existing is None:
        raise NotFoundError("Quiz not found")

    questions = tuple(q.to_domain() for q in body.questions)
    grading.validate_questions(questions)
    if body.lesson_id != existing.lesson_id:
        await _require_lesson(repos, body.lesson_id)
        other = await repos.quizzes.get_by_lesson(body.lesson_id)
        if other is not None and other.id != quiz_id:
            raise LessonAlreadyHasQuiz("This lesson already has a quiz")

    updated = await repos.quizzes.update(
        existing.with_questions(questions, lesson_id=body.lesson_id)
    )
    if updated is None:
        raise NotFoundError("Quiz not found")
    logger.info("Quiz %s updated by admin=%s", quiz_id, principal.user_id)
    return QuizOut.from_domain(updated)


@router.delete("/quizzes/{quiz_id}", response_model=ActionResult)
async def delete_quiz(
    quiz_id: UUID, principal: AdminPrincipal, repos: ReposDep
) -> ActionResult:
    if not await repos.quizzes.delete(quiz_id):
        raise NotFoundError("Quiz not found")
    logger.info("Quiz %s deleted by admin=%s", quiz_id, principal.user_id)
    return ActionResult(success=True, message="Quiz deleted successfully")


# ---------------------------------------------------------------------------
# Delivery and submission
# ---------------------------------------------------------------------------


@router.get("/lessons/{lesson_id}/quiz", response_model=QuizOut)
async def get_lesson_quiz(
    lesson_id: UUID, principal: AnyPrincipal, repos: ReposDep
) -> QuizOut:
    quiz = await repos.quizzes.get_by_lesson(lesson_id)
    if quiz is None:
        raise NotFoundError("Quiz not found")
    if not principal.is_admin():
        quiz = grading.redact_answer_key(quiz)
    return QuizOut.from_domain(quiz)


@router.post(
    "/quizzes/{quiz_id}/submit",
    response_model=QuizSubmissionOut,
    response_model_exclude_unset=True,
)
async def submit_quiz(
    quiz_id: UUID,
    body: QuizSubmissionIn,
    principal: LearnerPrincipal,
    repos: ReposDep,
) -> QuizSubmissionOut:
    if body.quiz_id is not None and body.quiz_id != quiz_id:
        raise ValidationFailure("Invalid form submission")

    outcome = await grading.submit_quiz(
        repos.quizzes,
        repos.completions,
        quiz_id=quiz_id,
        lesson_id=body.lesson_id,
        student_id=principal.user_id,
        selected_answers=body.selected_answers,
    )
    grade = outcome.grade
    result = QuizSubmissionOut(
        success=True,
        message=outcome.message,
        passed=grade.passed,
        score=grade.score,
        total_questions=grade.total_questions,
    )
    # incorrectQuestions only appears on a failed attempt
    if not grade.passed:
        result.incorrect_questions = [
            IncorrectQuestionOut(
                question_index=q.question_index,
                question=q.question,
                selected_answer=q.selected_answer,
                correct_answer=q.correct_answer,
                answers=list(q.answers),
            )
            for q in grade.incorrect_questions
        ]
    return result


@router.get("/lessons/{lesson_id}/completion", response_model=LessonCompletionOut)
async def get_lesson_completion(
    lesson_id: UUID, principal: LearnerPrincipal, repos: ReposDep
) -> LessonCompletionOut:
    completion = await repos.completions.get_for_lesson(principal.user_id, lesson_id)
    return LessonCompletionOut(
        success=True,
        completion=CompletionOut.model_validate(completion)
        if completion is not None
        else None,
    )
