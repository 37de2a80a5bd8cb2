import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.clients.redis_client import RedisClient
from lms_service.config import get_settings
from lms_service.dependencies.db import get_database
from lms_service.repositories.assignment_repo import AssignmentSubmissionRepository
from lms_service.repositories.attempt_repo import QuizAttemptRepository
from lms_service.repositories.course_repo import CourseRepository
from lms_service.repositories.enrollment_repo import EnrollmentRepository
from lms_service.repositories.lesson_repo import LessonRepository
from lms_service.repositories.notification_repo import NotificationRepository
from lms_service.repositories.quiz_repo import QuizRepository
from lms_service.services.access_service import AccessService
from lms_service.services.answer_buffer import AnswerBuffer
from lms_service.services.enrollment_service import EnrollmentService
from lms_service.services.grading_service import GradingService
from lms_service.services.notification_service import (
    NotificationGateway,
    NotificationService,
    notification_gateway,
)
from lms_service.services.quiz_attempt_service import QuizAttemptService

logger = logging.getLogger(__name__)

# =============================
#   Redis Client (Singleton)
# =============================
_redis_client_instance = None
_answer_buffer_instance = None


async def get_redis_client() -> RedisClient:
    """
    Get singleton RedisClient instance.
    Connection is established on first call and reused.
    """
    global _redis_client_instance

    if _redis_client_instance is None:
        settings = get_settings()
        _redis_client_instance = RedisClient(settings)
        await _redis_client_instance.connect()
        logger.info("RedisClient singleton created")

    return _redis_client_instance


async def get_answer_buffer(
        redis_client: RedisClient = Depends(get_redis_client),
) -> AnswerBuffer:
    """
    Get singleton AnswerBuffer. The in-process fallback store must be shared
    by every request, so this is created once.
    """
    global _answer_buffer_instance

    if _answer_buffer_instance is None:
        _answer_buffer_instance = AnswerBuffer(redis_client)

    return _answer_buffer_instance


def get_notification_gateway() -> NotificationGateway:
    return notification_gateway


# =============================
#   Service Builders
# =============================
def build_notification_service(session: AsyncSession) -> NotificationService:
    return NotificationService(
        notification_repository=NotificationRepository(session),
        gateway=notification_gateway,
    )


def build_access_service(session: AsyncSession) -> AccessService:
    return AccessService(
        lesson_repository=LessonRepository(session),
        course_repository=CourseRepository(session),
        enrollment_repository=EnrollmentRepository(session),
    )


def build_quiz_attempt_service(
        session: AsyncSession,
        redis_client: RedisClient,
        answer_buffer: AnswerBuffer,
) -> QuizAttemptService:
    """
    Wire a QuizAttemptService on one session. Used per request and by the
    background expiry sweep.
    """
    return QuizAttemptService(
        settings=get_settings(),
        quiz_repository=QuizRepository(session),
        attempt_repository=QuizAttemptRepository(session),
        access_service=build_access_service(session),
        answer_buffer=answer_buffer,
        redis_client=redis_client,
        notification_service=build_notification_service(session),
    )


# =============================
#   Per-Request Services
# =============================
async def get_access_service(
        session: AsyncSession = Depends(get_database),
) -> AccessService:
    return build_access_service(session)


async def get_notification_service(
        session: AsyncSession = Depends(get_database),
) -> NotificationService:
    return build_notification_service(session)


async def get_quiz_attempt_service(
        session: AsyncSession = Depends(get_database),
        redis_client: RedisClient = Depends(get_redis_client),
        answer_buffer: AnswerBuffer = Depends(get_answer_buffer),
) -> QuizAttemptService:
    """
    Get QuizAttemptService with all dependencies injected.

    Note: This is NOT a singleton because it requires database session
    which is per-request. RedisClient and AnswerBuffer are singletons.
    """
    return build_quiz_attempt_service(session, redis_client, answer_buffer)


async def get_grading_service(
        session: AsyncSession = Depends(get_database),
) -> GradingService:
    return GradingService(
        settings=get_settings(),
        submission_repository=AssignmentSubmissionRepository(session),
        attempt_repository=QuizAttemptRepository(session),
        quiz_repository=QuizRepository(session),
        notification_service=build_notification_service(session),
    )


async def get_enrollment_service(
        session: AsyncSession = Depends(get_database),
) -> EnrollmentService:
    return EnrollmentService(
        enrollment_repository=EnrollmentRepository(session),
        course_repository=CourseRepository(session),
        notification_service=build_notification_service(session),
    )
