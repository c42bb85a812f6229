from __future__ import annotations

import time
from dataclasses import dataclass, replace
from uuid import UUID, uuid4

MIN_ANSWERS = 2
MAX_ANSWERS = 6


@dataclass(frozen=True, slots=True)
class Question:
    title: str
    answers: tuple[str, ...]
    correct_answer_index: int

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "answers": list(self.answers),
            "correctAnswerIndex": self.correct_answer_index,
        }

    @staticmethod
    def from_dict(data: dict) -> Question:
        return Question(
            title=data["title"],
            answers=tuple(data["answers"]),
            correct_answer_index=int(data["correctAnswerIndex"]),
        )


@dataclass(frozen=True, slots=True)
class Quiz:
    """Ordered questions attached to exactly one lesson."""

    id: UUID
    lesson_id: UUID
    questions: tuple[Question, ...]
    created_at: int
    updated_at: int

    @staticmethod
    def new(*, lesson_id: UUID, questions: tuple[Question, ...]) -> Quiz:
        now = int(time.time())
        return Quiz(
            id=uuid4(),
            lesson_id=lesson_id,
            questions=questions,
            created_at=now,
            updated_at=now,
        )

    def with_questions(
        self, questions: tuple[Question, ...], *, lesson_id: UUID | None = None
    ) -> Quiz:
        return replace(
            self,
            questions=questions,
            lesson_id=lesson_id if lesson_id is not None else self.lesson_id,
            updated_at=int(time.time()),
        )


@dataclass(frozen=True, slots=True)
class CompletedQuizAssignment:
    """A student's passing attempt. Written once, never updated."""

    id: UUID
    quiz_id: UUID
    lesson_id: UUID
    student_id: str
    selected_answers: tuple[int, ...]
    number_of_questions: int
    total_correct_answers: int
    created_at: int

    @staticmethod
    def new(
        *,
        quiz_id: UUID,
        lesson_id: UUID,
        student_id: str,
        selected_answers: tuple[int, ...],
        number_of_questions: int,
        total_correct_answers: int,
    ) -> CompletedQuizAssignment:
        return CompletedQuizAssignment(
            id=uuid4(),
            quiz_id=quiz_id,
            lesson_id=lesson_id,
            student_id=student_id,
            selected_answers=selected_answers,
            number_of_questions=number_of_questions,
            total_correct_answers=total_correct_answers,
            created_at=int(time.time()),
        )
