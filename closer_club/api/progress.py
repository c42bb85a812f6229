"""Progress endpoints.

Learners read their own progress; admins and team leaders read any
student's.  Results are recomputed on every call.  An aggregation failure
still answers 200 with ``success: false`` and zeroed fields.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from closer_club.api.dependencies import LearnerPrincipal, SupervisorPrincipal
from closer_club.api.repositories import Repos, ReposDep
from closer_club.api.schemas import CourseProgressOut, StudentProgressOut
from closer_club.services import progress_service

router = APIRouter(prefix="/v1/progress", tags=["progress"])


async def _course_progress(
    repos: Repos, student_id: str, course_id: UUID
) -> CourseProgressOut:
    result = await progress_service.get_course_progress(
        repos.courses,
        repos.completions,
        student_id=student_id,
        course_id=course_id,
        require_course=True,
    )
    return CourseProgressOut.model_validate(result)


async def _student_progress(repos: Repos, student_id: str) -> StudentProgressOut:
    result = await progress_service.get_student_progress(
        repos.courses, repos.quizzes, repos.completions, student_id=student_id
    )
    return StudentProgressOut.model_validate(result)


@router.get("/me", response_model=StudentProgressOut)
async def get_my_progress(
    principal: LearnerPrincipal, repos: ReposDep
) -> StudentProgressOut:
    return await _student_progress(repos, principal.user_id)


@router.get("/courses/{course_id}", response_model=CourseProgressOut)
async def get_my_course_progress(
    course_id: UUID, principal: LearnerPrincipal, repos: ReposDep
) -> CourseProgressOut:
    return await _course_progress(repos, principal.user_id, course_id)


@router.get("/students/{student_id}", response_model=StudentProgressOut)
async def get_student_progress(
    student_id: str, _principal: SupervisorPrincipal, repos: ReposDep
) -> StudentProgressOut:
    # TODO: restrict team leaders to their own agents once the identity
    # service exposes team membership in the token
    return await _student_progress(repos, student_id)


@router.get(
    "/students/{student_id}/courses/{course_id}", response_model=CourseProgressOut
)
async def get_student_course_progress(
    student_id: str,
    course_id: UUID,
    _principal: SupervisorPrincipal,
    repos: ReposDep,
) -> CourseProgressOut:
    return await _course_progress(repos, student_id, course_id)
