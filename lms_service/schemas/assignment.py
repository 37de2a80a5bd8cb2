from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GradeSubmissionRequest(BaseModel):
    """Request schema for grading an assignment submission"""

    score: float = Field(..., ge=0, description="Points awarded")
    max_points: float = Field(..., gt=0, description="Points the submission is graded out of")
    feedback: Optional[str] = None
    graded_by: Optional[int] = Field(
        None, description="Grader user id; defaults to the calling instructor"
    )


class SubmissionResponse(BaseModel):
    id: int
    assignment_id: int
    assignment_title: str
    course_id: int
    course_name: str
    user_id: int
    user_name: str
    user_email: str
    submission_text: Optional[str] = None
    file_url: Optional[str] = None
    submitted_at: datetime
    score: Optional[float] = None
    max_points: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[int] = None


class SubmissionDetailResponse(SubmissionResponse):
    assignment_description: Optional[str] = None
    assignment_instructions: Optional[str] = None
    assignment_max_points: int
