"""Demo: author a quiz, fail it, pass it and read progress, using TestClient.

Run with:
    python scripts/demo_quiz_flow.py

Uses the in-memory repositories, so leave DATABASE_URL unset.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from closer_club.api.repositories import course_repo
from closer_club.main import app
from closer_club.models.course import Course, CourseModule, Enrollment, Lesson
from closer_club.models.principal import ROLE_ADMIN, ROLE_AGENT
from closer_club.services.token_service import create_access_token

STUDENT_ID = "agent-demo"


async def seed() -> tuple[Course, Lesson]:
    course = Course.new(name="Cold Calling 101", slug="cold-calling-101")
    module = CourseModule.new(course_id=course.id, name="Openers", position=0)
    lesson = Lesson.new(module_id=module.id, name="The first ten seconds", position=0)
    await course_repo.add_course(course)
    await course_repo.add_module(module)
    await course_repo.add_lesson(lesson)
    await course_repo.enroll(Enrollment.new(student_id=STUDENT_ID, course_id=course.id))
    return course, lesson


def main() -> None:
    course, lesson = asyncio.run(seed())
    client = TestClient(app)
    admin = {"Authorization": f"Bearer {create_access_token(sub='admin-demo', roles=[ROLE_ADMIN])}"}
    agent = {"Authorization": f"Bearer {create_access_token(sub=STUDENT_ID, roles=[ROLE_AGENT])}"}

    # ── Step 1: admin creates the quiz ──────────────────────────────
    r = client.post(
        "/v1/quizzes",
        headers=admin,
        json={
            "lessonId": str(lesson.id),
            "questions": [
                {"title": "Best opener?", "answers": ["Hi", "Name + reason"], "correctAnswerIndex": 1},
                {"title": "Talk ratio?", "answers": ["30/70", "70/30"], "correctAnswerIndex": 0},
                {"title": "Close with?", "answers": ["A question", "Silence", "Next step"], "correctAnswerIndex": 2},
            ],
        },
    )
    quiz_id = r.json()["id"]
    print(f"1. POST /v1/quizzes               → {r.status_code}  quiz={quiz_id}")

    # ── Step 2: the agent sees the quiz without the answer key ─────
    r = client.get(f"/v1/lessons/{lesson.id}/quiz", headers=agent)
    keys = [q["correctAnswerIndex"] for q in r.json()["questions"]]
    print(f"2. GET  /v1/lessons/…/quiz        → {r.status_code}  answer key={keys}")

    # ── Step 3: a failing attempt ───────────────────────────────────
    submit = f"/v1/quizzes/{quiz_id}/submit"
    r = client.post(submit, headers=agent, json={"lessonId": str(lesson.id), "selectedAnswers": [0, 1, 0]})
    body = r.json()
    print(
        f"3. POST {submit[:18]}… (fail) → {r.status_code}  "
        f"score={body['score']}/{body['totalQuestions']}  "
        f"incorrect={[q['questionIndex'] for q in body['incorrectQuestions']]}"
    )

    # ── Step 4: a passing attempt ───────────────────────────────────
    r = client.post(submit, headers=agent, json={"lessonId": str(lesson.id), "selectedAnswers": [1, 0, 2]})
    body = r.json()
    print(f"4. POST {submit[:18]}… (pass) → {r.status_code}  {body['message']}")

    # ── Step 5: progress ────────────────────────────────────────────
    r = client.get(f"/v1/progress/courses/{course.id}", headers=agent)
    body = r.json()
    print(
        f"5. GET  /v1/progress/courses/…    → {r.status_code}  "
        f"{body['completedLessons']}/{body['totalLessons']} lessons  {body['progressPercentage']}%"
    )


if __name__ == "__main__":
    main()
