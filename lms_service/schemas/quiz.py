from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from lms_service.model.enums import AttemptStatus, QuestionType


# =============================
#   Taking Schemas
# =============================
class OptionForTaking(BaseModel):
    """Answer option as shown to a student (no correctness key)"""

    id: int
    option_text: str
    display_order: int = 0


class QuestionForTaking(BaseModel):
    id: int
    question_type: QuestionType
    question_text: str
    points: float
    options: List[OptionForTaking] = Field(default_factory=list)


class QuizSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    max_attempts: Optional[int] = None
    passing_score: int
    question_count: int


class StartQuizResponse(BaseModel):
    """Response schema for starting (or resuming) a quiz attempt"""

    attempt_id: int
    attempt_number: int
    started_at: datetime
    deadline: Optional[datetime] = Field(
        None, description="Server deadline of the attempt; null for untimed quizzes"
    )
    time_limit_minutes: Optional[int] = None
    is_resumed: bool = Field(False, description="True when an in-progress attempt was returned")
    quiz: QuizSummary
    questions: List[QuestionForTaking]


class QuizQuestionsResponse(BaseModel):
    attempt_id: int
    questions: List[QuestionForTaking]
    flagged_question_ids: List[int] = Field(default_factory=list)


# =============================
#   Request Schemas
# =============================
class AnswerInput(BaseModel):
    """One answer given by a student"""

    question_id: int
    selected_option_id: Optional[int] = Field(
        None, description="Chosen option for objective questions"
    )
    answer_text: Optional[str] = Field(None, description="Free text for essay questions")


class DraftAnswerRequest(BaseModel):
    selected_option_id: Optional[int] = None
    answer_text: Optional[str] = None


class SubmitQuizRequest(BaseModel):
    """Request schema for submitting an attempt. Omitted answers fall back to saved drafts."""

    answers: Optional[List[AnswerInput]] = None


class AnswerGrade(BaseModel):
    answer_id: int
    points_earned: float = Field(..., ge=0)
    feedback: Optional[str] = None


class ReviewAttemptRequest(BaseModel):
    """Request schema for an instructor review of an attempt"""

    feedback: Optional[str] = None
    notes: Optional[str] = None
    grades: List[AnswerGrade] = Field(default_factory=list)


# =============================
#   Response Schemas
# =============================
class DraftAnswerResponse(BaseModel):
    attempt_id: int
    question_id: int
    saved: bool = True


class SubmitQuizResponse(BaseModel):
    attempt_id: int
    score: float
    max_score: float
    is_passed: bool
    passing_score: int
    pending_manual_grading: bool = Field(
        False, description="True while essay answers await instructor review"
    )
    is_timed_out: bool = False


class AnswerResult(BaseModel):
    id: int
    question_id: int
    selected_option_id: Optional[int] = None
    answer_text: Optional[str] = None
    is_correct: bool
    points_earned: float
    is_graded: bool
    feedback: Optional[str] = None
    correct_option_ids: Optional[List[int]] = Field(
        None, description="Only present when the quiz shows correct answers"
    )
    explanation: Optional[str] = None


class AttemptResultResponse(BaseModel):
    attempt_id: int
    quiz_id: int
    attempt_number: int
    score: Optional[float] = None
    max_score: Optional[float] = None
    is_passed: bool
    is_timed_out: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    feedback: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    answers: List[AnswerResult]


class AttemptSummary(BaseModel):
    """Attempt row for list views"""

    id: int
    quiz_id: int
    quiz_title: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    course_id: Optional[int] = None
    course_name: Optional[str] = None
    attempt_number: int
    status: AttemptStatus
    score: Optional[float] = None
    max_score: Optional[float] = None
    is_passed: bool
    is_timed_out: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class AnswerDetail(BaseModel):
    id: int
    question_id: int
    question_text: str
    question_type: QuestionType
    max_points: float
    selected_option_id: Optional[int] = None
    answer_text: Optional[str] = None
    is_correct: bool
    points_earned: float
    is_graded: bool
    feedback: Optional[str] = None


class AttemptDetailResponse(AttemptSummary):
    """Attempt with every answer, for instructor review"""

    feedback: Optional[str] = None
    notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    answers: List[AnswerDetail]


class PauseStateResponse(BaseModel):
    attempt_id: int
    is_paused: bool
    paused_at: Optional[datetime] = None
    paused_seconds: int


class TimeRemainingResponse(BaseModel):
    attempt_id: int
    remaining_seconds: Optional[int] = Field(
        None, description="Seconds left before the deadline; null for untimed quizzes"
    )
    deadline: Optional[datetime] = None
    is_paused: bool
    is_expired: bool


class FlagQuestionResponse(BaseModel):
    attempt_id: int
    question_id: int
    is_flagged: bool
    flagged_question_ids: List[int]
