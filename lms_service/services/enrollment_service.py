import logging
from datetime import datetime
from typing import List, Optional

from lms_service.model.enums import NotificationType
from lms_service.repositories.course_repo import CourseRepository
from lms_service.repositories.enrollment_repo import EnrollmentRepository
from lms_service.schemas.enrollment import EnrollmentResponse
from lms_service.services.access_service import DEFAULT_ENROLLMENT_TYPE, evaluate_enrollment
from lms_service.services.notification_service import NotificationService
from lms_service.utils.exceptions import (
    BadRequestException,
    ConflictException,
    ResourceNotFoundException,
)
from lms_service.utils.time_utils import utcnow, to_naive_utc

logger = logging.getLogger(__name__)


def _to_response(found: dict, course_title: Optional[str] = None) -> EnrollmentResponse:
    enrollment = found['enrollment']
    _, info = evaluate_enrollment(found)
    return EnrollmentResponse(
        id=enrollment.id,
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        course_title=course_title or found.get('course_title'),
        enrollment_type=info.enrollment_type,
        enrolled_at=enrollment.enrolled_at,
        expires_at=enrollment.expires_at,
        days_remaining=info.days_remaining,
        is_expired=info.is_expired,
    )


class EnrollmentService:
    """Admin enrollment management and the student's own enrollment list."""

    def __init__(
            self,
            enrollment_repository: EnrollmentRepository,
            course_repository: CourseRepository,
            notification_service: NotificationService,
    ):
        self._enrollment_repository = enrollment_repository
        self._course_repository = course_repository
        self._notification_service = notification_service

    async def enroll(
            self,
            user_id: int,
            course_id: int,
            enrollment_type_code: Optional[str] = None,
            expires_at: Optional[datetime] = None
    ) -> EnrollmentResponse:
        """
        Enroll a user in a course.

        Raises:
            ResourceNotFoundException: Course missing
            BadRequestException: Unknown enrollment type code
            ConflictException: User already has an active enrollment in the course

        A lapsed enrollment is retired and replaced by the new one.
        """
        course = await self._course_repository.get_by_id(course_id)
        if not course:
            raise ResourceNotFoundException(f"Course {course_id} not found")

        enrollment_type_id = None
        enrollment_type_name = DEFAULT_ENROLLMENT_TYPE
        if enrollment_type_code:
            lookup = await self._enrollment_repository.get_enrollment_type(enrollment_type_code)
            if not lookup:
                raise BadRequestException(f"Unknown enrollment type: {enrollment_type_code}")
            enrollment_type_id = lookup.id
            enrollment_type_name = lookup.name_en

        existing = await self._enrollment_repository.find_enrollment(user_id, course_id)
        if existing:
            is_active, _ = evaluate_enrollment(existing)
            if is_active:
                raise ConflictException(f"User {user_id} is already enrolled in course {course_id}")
            # committed together with the replacement below
            existing['enrollment'].mark_deleted()
            logger.info(f"Retiring expired enrollment {existing['enrollment'].id} of user {user_id}")

        enrollment = await self._enrollment_repository.create({
            "user_id": user_id,
            "course_id": course_id,
            "enrollment_type_id": enrollment_type_id,
            "enrolled_at": utcnow(),
            "expires_at": to_naive_utc(expires_at),
        })
        logger.info(f"User {user_id} enrolled in course {course_id} (enrollment {enrollment.id})")

        await self._notification_service.notify_user(
            user_id=user_id,
            notification_type=NotificationType.ENROLLMENT_CREATED,
            title="Enrollment confirmed",
            message=f"You now have access to '{course.title}'",
            data={"course_id": course_id, "enrollment_id": enrollment.id},
        )

        return _to_response(
            {'enrollment': enrollment, 'enrollment_type_name': enrollment_type_name},
            course_title=course.title,
        )

    async def remove_enrollment(self, enrollment_id: int):
        deleted = await self._enrollment_repository.soft_delete(enrollment_id)
        if not deleted:
            raise ResourceNotFoundException(f"Enrollment {enrollment_id} not found")
        logger.info(f"Enrollment {enrollment_id} removed")

    async def get_my_enrollments(self, user_id: int) -> List[EnrollmentResponse]:
        rows = await self._enrollment_repository.get_user_enrollments(user_id)
        return [_to_response(row) for row in rows]
