from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from closer_club.api.dependencies import LearnerPrincipal
from closer_club.api.repositories import ReposDep
from closer_club.api.schemas import (
    LessonAccessOut,
    LessonStatusOut,
    ModuleLessonStatusesOut,
    ModuleProgressOut,
)
from closer_club.services import lesson_access

router = APIRouter(prefix="/v1", tags=["lessons"])


@router.get(
    "/courses/{course_id}/lesson-statuses",
    response_model=list[ModuleLessonStatusesOut],
)
async def get_lesson_statuses(
    course_id: UUID,
    principal: LearnerPrincipal,
    repos: ReposDep,
    current_lesson_id: UUID | None = None,
) -> list[ModuleLessonStatusesOut]:
    modules = await lesson_access.get_lesson_statuses(
        repos.courses,
        repos.completions,
        student_id=principal.user_id,
        course_id=course_id,
        current_lesson_id=current_lesson_id,
    )
    return [
        ModuleLessonStatusesOut(
            module_id=m.module_id,
            module_name=m.module_name,
            accessible=m.accessible,
            lessons=[
                LessonStatusOut(
                    lesson_id=item.lesson_id,
                    lesson_name=item.lesson_name,
                    position=item.position,
                    status=item.status.value,
                    can_access=item.can_access,
                )
                for item in m.lessons
            ],
        )
        for m in modules
    ]


@router.get("/lessons/{lesson_id}/access", response_model=LessonAccessOut)
async def get_lesson_access(
    lesson_id: UUID, principal: LearnerPrincipal, repos: ReposDep
) -> LessonAccessOut:
    access = await lesson_access.check_lesson_access(
        repos.courses,
        repos.completions,
        student_id=principal.user_id,
        lesson_id=lesson_id,
    )
    return LessonAccessOut.model_validate(access)


@router.get("/modules/{module_id}/progress", response_model=ModuleProgressOut)
async def get_module_progress(
    module_id: UUID, principal: LearnerPrincipal, repos: ReposDep
) -> ModuleProgressOut:
    progress = await lesson_access.get_module_progress(
        repos.courses,
        repos.completions,
        student_id=principal.user_id,
        module_id=module_id,
    )
    return ModuleProgressOut.model_validate(progress)
