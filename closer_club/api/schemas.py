"""Request/response bodies.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from closer_club.models.quiz import MAX_ANSWERS, MIN_ANSWERS, Question, Quiz


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ActionResult(CamelModel):
    success: bool
    message: str


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------


class QuestionIn(CamelModel):
    title: str = Field(min_length=1)
    answers: list[str] = Field(min_length=MIN_ANSWERS, max_length=MAX_ANSWERS)
    correct_answer_index: int = Field(ge=0)

    def to_domain(self) -> Question:
        return Question(
            title=self.title.strip(),
            answers=tuple(a.strip() for a in self.answers),
            correct_answer_index=self.correct_answer_index,
        )


class QuizIn(CamelModel):
    lesson_id: UUID
    questions: list[QuestionIn] = Field(min_length=1)


class QuestionOut(CamelModel):
    title: str
    answers: list[str]
    correct_answer_index: int


class QuizOut(CamelModel):
    id: UUID
    lesson_id: UUID
    questions: list[QuestionOut]
    created_at: int
    updated_at: int

    @classmethod
    def from_domain(cls, quiz: Quiz) -> QuizOut:
        return cls(
            id=quiz.id,
            lesson_id=quiz.lesson_id,
            questions=[
                QuestionOut(
                    title=q.title,
                    answers=list(q.answers),
                    correct_answer_index=q.correct_answer_index,
                )
                for q in quiz.questions
            ],
            created_at=quiz.created_at,
            updated_at=quiz.updated_at,
        )


class QuizListItem(QuizOut):
    lesson_name: str | None = None


class QuizSubmissionIn(CamelModel):
    quiz_id: UUID | None = None
    lesson_id: UUID
    selected_answers: list[int] = Field(min_length=1)


class IncorrectQuestionOut(CamelModel):
    question_index: int
    question: str
    selected_answer: int | None
    correct_answer: int
    answers: list[str]


class QuizSubmissionOut(CamelModel):
    success: bool
    message: str
    passed: bool
    score: int
    total_questions: int
    incorrect_questions: list[IncorrectQuestionOut] | None = None


class CompletionOut(CamelModel):
    id: UUID
    quiz_id: UUID
    lesson_id: UUID
    student_id: str
    selected_answers: list[int]
    number_of_questions: int
    total_correct_answers: int
    created_at: int


class LessonCompletionOut(CamelModel):
    success: bool
    completion: CompletionOut | None


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class CourseProgressOut(CamelModel):
    success: bool
    total_lessons: int
    completed_lessons: int
    progress_percentage: int


class CourseProgressDetailOut(CamelModel):
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


class ProgressSummaryOut(CamelModel):
    total_enrolled_courses: int
    average_progress: int
    total_lessons: int
    total_completed_lessons: int
    total_quizzes: int
    total_completed_quizzes: int
    average_quiz_completion_rate: int
    overall_average_quiz_score: int
    total_questions_answered: int
    total_correct_answers: int
    overall_accuracy: int


class StudentProgressOut(CamelModel):
    success: bool
    student_id: str
    courses: list[CourseProgressDetailOut]
    summary: ProgressSummaryOut


# ---------------------------------------------------------------------------
# Lesson access
# ---------------------------------------------------------------------------


class LessonStatusOut(CamelModel):
    lesson_id: UUID
    lesson_name: str
    position: int
    status: str
    can_access: bool


class ModuleLessonStatusesOut(CamelModel):
    module_id: UUID
    module_name: str
    accessible: bool
    lessons: list[LessonStatusOut]


class LessonAccessOut(CamelModel):
    can_access: bool
    reason: str
    required_lesson_id: UUID | None = None


class ModuleProgressOut(CamelModel):
    total_lessons: int
    completed_lessons: int
    progress_percentage: int
    next_accessible_lesson_id: UUID | None = None
