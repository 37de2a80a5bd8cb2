import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from lms_service.dependencies.services import get_grading_service
from lms_service.model.enums import UserRole
from lms_service.schemas.assignment import (
    GradeSubmissionRequest,
    SubmissionDetailResponse,
    SubmissionResponse,
)
from lms_service.schemas.generic import ApiResponse
from lms_service.services.auth_service import CurrentUser, require_roles
from lms_service.services.grading_service import GradingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lms/assignments", tags=["Assignments"])

instructor_only = require_roles(UserRole.INSTRUCTOR.value, UserRole.ADMIN.value)


@router.get(
    "/submissions/pending",
    response_model=ApiResponse[List[SubmissionResponse]],
    summary="List Ungraded Submissions",
)
async def get_pending_submissions(
        course_id: Optional[int] = Query(None, description="Restrict to one course"),
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[List[SubmissionResponse]]:
    submissions = await grading_service.get_pending_submissions(user.user_id, course_id=course_id)
    return ApiResponse[List[SubmissionResponse]].success(
        data=submissions, message=f"{len(submissions)} submission(s) awaiting grading"
    )


@router.get(
    "/submissions/{submission_id}",
    response_model=ApiResponse[SubmissionDetailResponse],
    summary="Get Submission",
)
async def get_submission(
        submission_id: int,
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[SubmissionDetailResponse]:
    detail = await grading_service.get_submission_details(submission_id, user.user_id)
    return ApiResponse[SubmissionDetailResponse].success(data=detail)


@router.post(
    "/submissions/{submission_id}/grade",
    response_model=ApiResponse[SubmissionDetailResponse],
    summary="Grade Submission",
)
async def grade_submission(
        submission_id: int,
        request: GradeSubmissionRequest,
        grading_service: GradingService = Depends(get_grading_service),
        user: CurrentUser = Depends(instructor_only),
) -> ApiResponse[SubmissionDetailResponse]:
    """
    Raises:
        - 400 Bad Request: score > max_points
        - 403 Forbidden: Not the course instructor
        - 404 Not Found: Submission missing
    """
    detail = await grading_service.grade_submission(submission_id, request, user.user_id)
    return ApiResponse[SubmissionDetailResponse].success(data=detail, message="Submission graded")
