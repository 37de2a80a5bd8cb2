"""
Repository package - Data access layer
"""

from lms_service.repositories.base_repo import BaseRepository
from lms_service.repositories.lesson_repo import LessonRepository
from lms_service.repositories.course_repo import CourseRepository
from lms_service.repositories.enrollment_repo import EnrollmentRepository
from lms_service.repositories.quiz_repo import QuizRepository
from lms_service.repositories.attempt_repo import QuizAttemptRepository
from lms_service.repositories.assignment_repo import AssignmentSubmissionRepository
from lms_service.repositories.notification_repo import NotificationRepository

__all__ = [
    "BaseRepository",
    "LessonRepository",
    "CourseRepository",
    "EnrollmentRepository",
    "QuizRepository",
    "QuizAttemptRepository",
    "AssignmentSubmissionRepository",
    "NotificationRepository",
]
