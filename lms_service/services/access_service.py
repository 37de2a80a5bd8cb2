"""
Access Service - Decides who may open a lesson.

Evaluation order (first match wins):
    1. Lesson (or its section/course) missing or soft-deleted -> 404
    2. Admin role                       -> admin
    3. Owning instructor of the course  -> instructor
    4. Preview lesson                   -> preview
    5. Active enrollment                -> enrolled
    6. Otherwise                        -> denied (expired enrollments are reported)
"""

import logging
from datetime import datetime
from typing import Optional, List, Tuple

from lms_service.model.enums import AccessReason, UserRole
from lms_service.repositories.course_repo import CourseRepository
from lms_service.repositories.enrollment_repo import EnrollmentRepository
from lms_service.repositories.lesson_repo import LessonRepository
from lms_service.schemas.lesson import (
    EnrollmentInfo,
    LessonAccessResponse,
    CourseLessonResponse,
    CourseLessonsResponse,
    LessonDetail,
)
from lms_service.services.auth_service import CurrentUser
from lms_service.utils.exceptions import AccessDeniedException, ResourceNotFoundException
from lms_service.utils.time_utils import utcnow, days_until

logger = logging.getLogger(__name__)

DEFAULT_ENROLLMENT_TYPE = "Standard"


def is_admin_role(user_role: Optional[str]) -> bool:
    return user_role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)


def evaluate_enrollment(
        found: Optional[dict], now: Optional[datetime] = None
) -> Tuple[bool, Optional[EnrollmentInfo]]:
    """
    Turn an enrollment row (as returned by EnrollmentRepository.find_enrollment)
    into (is_active, EnrollmentInfo).
    """
    if not found:
        return False, None

    now = now or utcnow()
    enrollment = found['enrollment']
    enrollment_type = found.get('enrollment_type_name') or DEFAULT_ENROLLMENT_TYPE

    if enrollment.expires_at is not None and enrollment.expires_at < now:
        return False, EnrollmentInfo(
            id=enrollment.id,
            enrollment_type=enrollment_type,
            expires_at=enrollment.expires_at,
            days_remaining=0,
            is_expired=True,
        )

    days_remaining = (
        days_until(enrollment.expires_at, now) if enrollment.expires_at is not None else None
    )
    return True, EnrollmentInfo(
        id=enrollment.id,
        enrollment_type=enrollment_type,
        expires_at=enrollment.expires_at,
        days_remaining=days_remaining,
        is_expired=False,
    )


class AccessService:
    """
    Service for lesson and course access decisions.
    Inject via FastAPI Depends() (see dependencies/services.py).
    """

    def __init__(
            self,
            lesson_repository: LessonRepository,
            course_repository: CourseRepository,
            enrollment_repository: EnrollmentRepository,
    ):
        self._lesson_repository = lesson_repository
        self._course_repository = course_repository
        self._enrollment_repository = enrollment_repository

    async def check_lesson_access(
            self,
            lesson_id: int,
            user_id: int,
            user_role: Optional[str] = None
    ) -> LessonAccessResponse:
        """
        Evaluate whether the user may open the lesson.

        Args:
            lesson_id: ID of the lesson
            user_id: ID of the requesting user
            user_role: Effective role of the user (admin/super_admin bypass)

        Returns:
            LessonAccessResponse with can_access, reason and enrollment facts

        Raises:
            ResourceNotFoundException: Lesson, section or course missing/deleted
        """
        context = await self._lesson_repository.get_lesson_with_course(lesson_id)
        if not context:
            raise ResourceNotFoundException(f"Lesson {lesson_id} not found")

        lesson = context['lesson']

        if is_admin_role(user_role):
            return LessonAccessResponse(can_access=True, reason=AccessReason.ADMIN)

        if context['instructor_id'] == user_id:
            return LessonAccessResponse(can_access=True, reason=AccessReason.INSTRUCTOR)

        if lesson.is_preview:
            return LessonAccessResponse(can_access=True, reason=AccessReason.PREVIEW)

        found = await self._enrollment_repository.find_enrollment(user_id, context['course_id'])
        is_active, info = evaluate_enrollment(found)

        if is_active:
            return LessonAccessResponse(
                can_access=True, reason=AccessReason.ENROLLED, enrollment=info
            )

        logger.debug(f"User {user_id} denied lesson {lesson_id} (enrollment={info})")
        return LessonAccessResponse(
            can_access=False, reason=AccessReason.DENIED, enrollment=info
        )

    async def can_access_course(self, course_id: int, instructor_id: int, user: CurrentUser) -> bool:
        """Admin, owning instructor, or non-expired enrollment."""
        if user.is_admin or instructor_id == user.user_id:
            return True

        found = await self._enrollment_repository.find_enrollment(user.user_id, course_id)
        is_active, _ = evaluate_enrollment(found)
        return is_active

    async def get_course_lessons(
            self,
            course_id: int,
            user_id: Optional[int] = None,
            user_role: Optional[str] = None
    ) -> CourseLessonsResponse:
        """
        List a course's lessons annotated with access for the caller.
        Anonymous callers only get preview lessons marked accessible.
        """
        course = await self._course_repository.get_by_id(course_id)
        if not course:
            raise ResourceNotFoundException(f"Course {course_id} not found")

        lessons = await self._lesson_repository.get_lessons_by_course_id(course_id)

        # course-wide decision, evaluated once
        course_reason: Optional[AccessReason] = None
        if user_id is not None:
            if is_admin_role(user_role):
                course_reason = AccessReason.ADMIN
            elif course.instructor_id == user_id:
                course_reason = AccessReason.INSTRUCTOR
            else:
                found = await self._enrollment_repository.find_enrollment(user_id, course_id)
                is_active, _ = evaluate_enrollment(found)
                if is_active:
                    course_reason = AccessReason.ENROLLED

        items: List[CourseLessonResponse] = []
        for lesson in lessons:
            if course_reason in (AccessReason.ADMIN, AccessReason.INSTRUCTOR):
                reason = course_reason
            elif lesson.is_preview:
                reason = AccessReason.PREVIEW
            elif course_reason == AccessReason.ENROLLED:
                reason = AccessReason.ENROLLED
            else:
                reason = AccessReason.DENIED

            items.append(CourseLessonResponse(
                id=lesson.id,
                section_id=lesson.section_id,
                title=lesson.title,
                description=lesson.description,
                duration_minutes=lesson.duration_minutes,
                display_order=lesson.display_order or 0,
                is_preview=lesson.is_preview,
                can_access=reason != AccessReason.DENIED,
                access_reason=reason,
            ))

        return CourseLessonsResponse(course_id=course_id, lessons=items)

    async def get_lesson(self, lesson_id: int, user: CurrentUser) -> LessonDetail:
        """
        Return the full lesson for a user that may open it.

        Raises:
            ResourceNotFoundException: Lesson missing
            AccessDeniedException: Access check denied
        """
        access = await self.check_lesson_access(lesson_id, user.user_id, user.role)
        if not access.can_access:
            if access.enrollment and access.enrollment.is_expired:
                raise AccessDeniedException("Enrollment has expired")
            raise AccessDeniedException("Not enrolled in course")

        context = await self._lesson_repository.get_lesson_with_course(lesson_id)
        lesson = context['lesson']

        return LessonDetail(
            id=lesson.id,
            section_id=lesson.section_id,
            course_id=context['course_id'],
            title=lesson.title,
            description=lesson.description,
            content=lesson.content,
            video_url=lesson.video_url,
            duration_minutes=lesson.duration_minutes,
            display_order=lesson.display_order or 0,
            is_preview=lesson.is_preview,
            access=access,
        )
