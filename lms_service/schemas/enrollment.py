from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EnrollRequest(BaseModel):
    """Request schema for enrolling a user in a course"""

    user_id: int
    course_id: int
    enrollment_type_code: Optional[str] = Field(
        None, description="Lookup code of the enrollment type, e.g. 'standard'"
    )
    expires_at: Optional[datetime] = Field(None, description="Null for lifetime access")


class EnrollmentResponse(BaseModel):
    id: int
    user_id: int
    course_id: int
    course_title: Optional[str] = None
    enrollment_type: str = "Standard"
    enrolled_at: datetime
    expires_at: Optional[datetime] = None
    days_remaining: Optional[int] = None
    is_expired: bool = False
