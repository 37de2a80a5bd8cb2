from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from lms_service.model.enums import AccessReason


class EnrollmentInfo(BaseModel):
    """Enrollment facts attached to an access decision"""

    id: int
    enrollment_type: str = Field(default="Standard", description="Lookup name of the enrollment type")
    expires_at: Optional[datetime] = None
    days_remaining: Optional[int] = Field(
        None, description="Whole days until expiry; null for lifetime enrollments"
    )
    is_expired: bool = False


class LessonAccessResponse(BaseModel):
    """Result of evaluating whether a user may open a lesson"""

    can_access: bool
    reason: AccessReason
    enrollment: Optional[EnrollmentInfo] = None


class CourseLessonResponse(BaseModel):
    """Lesson row of a course outline annotated with access"""

    id: int
    section_id: int
    title: str
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    display_order: int = 0
    is_preview: bool = False
    can_access: bool
    access_reason: AccessReason


class LessonDetail(BaseModel):
    """Full lesson payload for a user that passed the access check"""

    id: int
    section_id: int
    course_id: int
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = None
    duration_minutes: Optional[int] = None
    display_order: int = 0
    is_preview: bool = False
    access: LessonAccessResponse


class CourseLessonsResponse(BaseModel):
    course_id: int
    lessons: List[CourseLessonResponse]
