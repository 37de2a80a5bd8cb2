"""
Quiz grading endpoints for instructors
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from lms_service.dependencies.services import get_grading_service
from lms_service.model.enums import UserRole
from lms_service.schemas.generic import ApiResponse
from lms_service.schemas.quiz import AttemptDetailResponse, AttemptSummary, ReviewAttemptRequest
from lms_service.services.auth_service import CurrentUser, require_roles
from lms_service.services.grading_service import GradingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lms/quizzes", tags=["Quiz Grading"])

instructor_only = require_roles(UserRole.INSTRUCTOR.value, UserRole.ADMIN.value)


@router.get(
    "/attempts",
    response_model=ApiResponse[List[AttemptSummary]],
    summary="List Attempts Across My Courses",
)
async def get_all_attempts(
        course_id: Optional[int] = Query(None, description="Restrict to one course"),
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[List[AttemptSummary]]:
    attempts = await grading_service.get_all_attempts(user.user_id, course_id=course_id)
    return ApiResponse[List[AttemptSummary]].success(data=attempts)


@router.get(
    "/{quiz_id}/attempts",
    response_model=ApiResponse[List[AttemptSummary]],
    summary="List Attempts Of A Quiz",
)
async def get_quiz_attempts(
        quiz_id: int,
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[List[AttemptSummary]]:
    attempts = await grading_service.get_quiz_attempts(quiz_id, user.user_id)
    return ApiResponse[List[AttemptSummary]].success(data=attempts)


@router.get(
    "/attempts/{attempt_id}",
    response_model=ApiResponse[AttemptDetailResponse],
    summary="Get Attempt Details",
)
async def get_attempt_details(
        attempt_id: int,
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[AttemptDetailResponse]:
    detail = await grading_service.get_attempt_details(attempt_id, user.user_id)
    return ApiResponse[AttemptDetailResponse].success(data=detail)


@router.post(
    "/attempts/{attempt_id}/review",
    response_model=ApiResponse[AttemptDetailResponse],
    summary="Review Attempt",
    description="Grade essay (or override objective) answers and leave feedback.",
)
async def review_attempt(
        attempt_id: int,
        request: ReviewAttemptRequest,
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[AttemptDetailResponse]:
    """
    - **grades**: list of {answer_id, points_earned, feedback}

    Raises:
        - 400 Bad Request: Unknown answer or points out of range
        - 403 Forbidden: Not the course instructor
        - 404 Not Found: Attempt missing
    """
    detail = await grading_service.review_attempt(attempt_id, request, user.user_id)
    return ApiResponse[AttemptDetailResponse].success(data=detail, message="Attempt reviewed")
