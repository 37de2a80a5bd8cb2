"""
Enums shared by models, schemas and services
"""
from enum import Enum


class UserRole(str, Enum):
    """Platform role carried in the access token"""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"

    def is_admin(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class AccessReason(str, Enum):
    """Why a lesson is (or is not) accessible"""
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    ENROLLED = "enrolled"
    PREVIEW = "preview"
    DENIED = "denied"


class QuestionType(str, Enum):
    """Type of quiz question"""
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    ESSAY = "ESSAY"

    def is_objective(self) -> bool:
        return self != QuestionType.ESSAY

    def requires_manual_grading(self) -> bool:
        return self == QuestionType.ESSAY


class AttemptStatus(str, Enum):
    """Lifecycle state of a quiz attempt, derived from its timestamps"""
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    SUBMITTED = "SUBMITTED"


class LookupType(str, Enum):
    ENROLLMENT_TYPE = "enrollment_type"


class NotificationType(str, Enum):
    SUBMISSION_GRADED = "submission_graded"
    QUIZ_REVIEWED = "quiz_reviewed"
    QUIZ_SUBMITTED = "quiz_submitted"
    ENROLLMENT_CREATED = "enrollment_created"
    GENERAL = "general"


class AdminNotificationEvent(str, Enum):
    TICKET_CREATED = "admin:ticket:created"
    TICKET_UPDATED = "admin:ticket:updated"
    REPORT_CREATED = "admin:report:created"
    REPORT_UPDATED = "admin:report:updated"
    USER_REGISTERED = "admin:user:registered"
    CONTENT_FLAGGED = "admin:content:flagged"
    STATS_UPDATED = "admin:stats:updated"
