"""
Model package - Database models and enums
"""
from lms_service.model.base import Base, BaseMixin, TimestampMixin, SoftDeleteMixin
from lms_service.model.enums import (
    AccessReason,
    AttemptStatus,
    LookupType,
    NotificationType,
    QuestionType,
    UserRole,
)
from lms_service.model.user_models import User
from lms_service.model.course_models import Course, Section, Lesson, Lookup, Enrollment
from lms_service.model.quiz_models import (
    Quiz,
    Question,
    QuestionOption,
    QuizQuestion,
    QuizAttempt,
    QuizAnswer,
)
from lms_service.model.assignment_models import Assignment, AssignmentSubmission
from lms_service.model.notification_models import Notification

__all__ = [
    # Base classes
    'Base',
    'BaseMixin',
    'TimestampMixin',
    'SoftDeleteMixin',
    # Enums
    'AccessReason',
    'AttemptStatus',
    'LookupType',
    'NotificationType',
    'QuestionType',
    'UserRole',
    # Users
    'User',
    # Course models
    'Course',
    'Section',
    'Lesson',
    'Lookup',
    'Enrollment',
    # Quiz models
    'Quiz',
    'Question',
    'QuestionOption',
    'QuizQuestion',
    'QuizAttempt',
    'QuizAnswer',
    # Assignment models
    'Assignment',
    'AssignmentSubmission',
    # Notifications
    'Notification',
]
