import logging
from typing import List

from fastapi import APIRouter, Depends

from lms_service.dependencies.services import get_enrollment_service
from lms_service.model.enums import UserRole
from lms_service.schemas.enrollment import EnrollRequest, EnrollmentResponse
from lms_service.schemas.generic import ApiResponse
from lms_service.services.auth_service import AuthService, CurrentUser, require_roles
from lms_service.services.enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lms/enrollments", tags=["Enrollments"])


@router.get(
    "/my",
    response_model=ApiResponse[List[EnrollmentResponse]],
    summary="List My Enrollments",
)
async def get_my_enrollments(
        enrollment_service: EnrollmentService = Depends(get_enrollment_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[List[EnrollmentResponse]]:
    enrollments = await enrollment_service.get_my_enrollments(user.user_id)
    return ApiResponse[List[EnrollmentResponse]].success(data=enrollments)


@router.post(
    "",
    response_model=ApiResponse[EnrollmentResponse],
    summary="Enroll User",
)
async def enroll(
        request: EnrollRequest,
        enrollment_service: EnrollmentService = Depends(get_enrollment_service),
        user: CurrentUser = Depends(require_roles(UserRole.ADMIN.value)),
) -> ApiResponse[EnrollmentResponse]:
    """
    Raises:
        - 404 Not Found: Course missing
        - 409 Conflict: User already enrolled
    """
    logger.info(f"Admin {user.user_id} enrolling user {request.user_id} in course {request.course_id}")
    enrollment = await enrollment_service.enroll(
        user_id=request.user_id,
        course_id=request.course_id,
        enrollment_type_code=request.enrollment_type_code,
        expires_at=request.expires_at,
    )
    return ApiResponse[EnrollmentResponse].success(data=enrollment, message="User enrolled")


@router.delete(
    "/{enrollment_id}",
    response_model=ApiResponse[None],
    summary="Remove Enrollment",
)
async def remove_enrollment(
        enrollment_id: int,
        enrollment_service: EnrollmentService = Depends(get_enrollment_service),
        user: CurrentUser = Depends(require_roles(UserRole.ADMIN.value)),
) -> ApiResponse[None]:
    await enrollment_service.remove_enrollment(enrollment_id)
    return ApiResponse[None].success(message="Enrollment removed")
