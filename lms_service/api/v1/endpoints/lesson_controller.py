import logging
from typing import Optional

from fastapi import APIRouter, Depends

from lms_service.dependencies.services import get_access_service
from lms_service.schemas.generic import ApiResponse
from lms_service.schemas.lesson import CourseLessonsResponse, LessonAccessResponse, LessonDetail
from lms_service.services.access_service import AccessService
from lms_service.services.auth_service import AuthService, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lms/lessons", tags=["Lessons"])


@router.get(
    "/course/{course_id}",
    response_model=ApiResponse[CourseLessonsResponse],
    summary="List Course Lessons",
    description="Course outline with per-lesson access. Works without a token (preview lessons only).",
)
async def get_course_lessons(
        course_id: int,
        access_service: AccessService = Depends(get_access_service),
        user: Optional[CurrentUser] = Depends(AuthService.get_optional_user),
) -> ApiResponse[CourseLessonsResponse]:
    result = await access_service.get_course_lessons(
        course_id,
        user_id=user.user_id if user else None,
        user_role=user.role if user else None,
    )
    return ApiResponse[CourseLessonsResponse].success(
        data=result, message=f"Retrieved {len(result.lessons)} lessons"
    )


@router.get(
    "/{lesson_id}/access-check",
    response_model=ApiResponse[LessonAccessResponse],
    summary="Check Lesson Access",
)
async def check_lesson_access(
        lesson_id: int,
        access_service: AccessService = Depends(get_access_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[LessonAccessResponse]:
    """
    Evaluate access without returning lesson content.

    - **reason**: admin | instructor | enrolled | preview | denied
    - **enrollment**: present when an enrollment row exists (including expired ones)
    """
    result = await access_service.check_lesson_access(lesson_id, user.user_id, user.role)
    return ApiResponse[LessonAccessResponse].success(data=result)


@router.get(
    "/{lesson_id}",
    response_model=ApiResponse[LessonDetail],
    summary="Get Lesson",
    description="Full lesson content. 403 when the caller may not access it.",
)
async def get_lesson(
        lesson_id: int,
        access_service: AccessService = Depends(get_access_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[LessonDetail]:
    result = await access_service.get_lesson(lesson_id, user)
    logger.info(f"User {user.user_id} opened lesson {lesson_id} ({result.access.reason.value})")
    return ApiResponse[LessonDetail].success(data=result)
