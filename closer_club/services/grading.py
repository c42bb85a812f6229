"""Quiz grading.

One point per question whose selected index equals the stored correct
index; an attempt passes when ``score / total >= PASS_THRESHOLD``.

Passing and failing are recorded differently:

  pass: one CompletedQuizAssignment is written for (student, lesson).  A
        later passing attempt on the same lesson is graded and reported
        but writes nothing new.
  fail: nothing is written.  The response carries every incorrectly
        answered question (with its answer list) so the client can show a
        review screen without a second request.  Retries are unlimited.

The answer key used for grading is always the stored quiz, re-fetched by
id; clients only ever see quizzes passed through ``redact_answer_key``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from uuid import UUID

from closer_club.core.errors import NotFoundError, ValidationFailure
from closer_club.core.metrics import QUIZ_COMPLETIONS_RECORDED, QUIZ_SUBMISSIONS
from closer_club.models.quiz import (
    MAX_ANSWERS,
    MIN_ANSWERS,
    CompletedQuizAssignment,
    Question,
    Quiz,
)
from closer_club.repos.completion_repo import CompletionRepo
from closer_club.repos.quiz_repo import QuizRepo

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 0.5
ANSWER_KEY_SENTINEL = -1

PASSED_MESSAGE = "Quiz passed successfully!"
FAILED_MESSAGE = "Quiz submitted. Some answers were incorrect. Please try again."


@dataclass(frozen=True, slots=True)
class IncorrectQuestion:
    question_index: int
    question: str
    selected_answer: int | None  # None when the submission was too short
    correct_answer: int
    answers: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class GradeResult:
    score: int
    total_questions: int
    passed: bool
    incorrect_questions: tuple[IncorrectQuestion, ...]


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    grade: GradeResult
    completion: CompletedQuizAssignment | None
    newly_recorded: bool

    @property
    def message(self) -> str:
        return PASSED_MESSAGE if self.grade.passed else FAILED_MESSAGE


def grade_answers(
    questions: Sequence[Question], selected_answers: Sequence[int]
) -> GradeResult:
    """Score ``selected_answers`` against ``questions`` position by position.

    Missing trailing answers count as wrong.  Extra answers beyond the
    question list are ignored.  A quiz with no questions never passes.
    """
    score = 0
    incorrect: list[IncorrectQuestion] = []
    for index, question in enumerate(questions):
        selected = selected_answers[index] if index < len(selected_answers) else None
        if selected is not None and selected == question.correct_answer_index:
            score += 1
            continue
        incorrect.append(
            IncorrectQuestion(
                question_index=index,
                question=question.title,
                selected_answer=selected,
                correct_answer=question.correct_answer_index,
                answers=question.answers,
            )
        )

    total = len(questions)
    passed = total > 0 and score / total >= PASS_THRESHOLD
    return GradeResult(
        score=score,
        total_questions=total,
        passed=passed,
        incorrect_questions=tuple(incorrect),
    )


async def submit_quiz(
    quizzes: QuizRepo,
    completions: CompletionRepo,
    *,
    quiz_id: UUID,
    lesson_id: UUID,
    student_id: str,
    selected_answers: Sequence[int],
) -> SubmissionOutcome:
    """Grade a submission against the stored quiz and record a pass.

    Raises NotFoundError when the quiz does not exist and ValidationFailure
    when it belongs to a different lesson than the one submitted for.
    """
    quiz = await quizzes.get(quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz not found")
    if quiz.lesson_id != lesson_id:
        logger.warning(
            "Quiz %s submitted for lesson %s but belongs to lesson %s",
            quiz_id,
            lesson_id,
            quiz.lesson_id,
        )
        raise ValidationFailure("Quiz does not belong to this lesson")

    grade = grade_answers(quiz.questions, selected_answers)
    QUIZ_SUBMISSIONS.labels(outcome="passed" if grade.passed else "failed").inc()

    if not grade.passed:
        logger.info(
            "Quiz %s failed by student=%s score=%d/%d",
            quiz_id,
            student_id,
            grade.score,
            grade.total_questions,
            extra={"quiz_id": str(quiz_id)},
        )
        return SubmissionOutcome(grade=grade, completion=None, newly_recorded=False)

    completion = CompletedQuizAssignment.new(
        quiz_id=quiz.id,
        lesson_id=lesson_id,
        student_id=student_id,
        selected_answers=tuple(selected_answers),
        number_of_questions=grade.total_questions,
        total_correct_answers=grade.score,
    )
    inserted = await completions.add_if_absent(completion)
    if inserted:
        QUIZ_COMPLETIONS_RECORDED.inc()
    else:
        completion = await completions.get_for_lesson(student_id, lesson_id)

    logger.info(
        "Quiz %s passed by student=%s score=%d/%d recorded=%s",
        quiz_id,
        student_id,
        grade.score,
        grade.total_questions,
        inserted,
        extra={"quiz_id": str(quiz_id)},
    )
    return SubmissionOutcome(grade=grade, completion=completion, newly_recorded=inserted)


def redact_answer_key(quiz: Quiz) -> Quiz:
    """Copy of ``quiz`` with every correct index replaced by the sentinel."""
    return replace(
        quiz,
        questions=tuple(
            replace(q, correct_answer_index=ANSWER_KEY_SENTINEL) for q in quiz.questions
        ),
    )


def validate_questions(questions: Sequence[Question]) -> None:
    """Authoring-time checks; grading trusts stored quizzes."""
    if not questions:
        raise ValidationFailure("A quiz needs at least one question")
    for index, question in enumerate(questions, start=1):
        if not question.title.strip():
            raise ValidationFailure(f"Question {index} needs a title")
        if not MIN_ANSWERS <= len(question.answers) <= MAX_ANSWERS:
            raise ValidationFailure(
                f"Question {index} needs between {MIN_ANSWERS} and {MAX_ANSWERS} answers"
            )
        if any(not answer.strip() for answer in question.answers):
            raise ValidationFailure(f"Question {index} has an empty answer")
        if not 0 <= question.correct_answer_index < len(question.answers):
            raise ValidationFailure(
                f"Question {index} has no valid correct answer selected"
            )
