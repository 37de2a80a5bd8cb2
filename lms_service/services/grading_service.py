"""
Grading Service - Instructor workflows over assignment submissions and quiz attempts.

Every operation checks ownership: the instructor must own the course the
submission or attempt belongs to.
"""

import logging
from typing import List, Optional

from lms_service.config import Settings
from lms_service.model.enums import NotificationType, QuestionType
from lms_service.repositories.assignment_repo import AssignmentSubmissionRepository
from lms_service.repositories.attempt_repo import QuizAttemptRepository
from lms_service.repositories.quiz_repo import QuizRepository
from lms_service.schemas.assignment import (
    GradeSubmissionRequest,
    SubmissionDetailResponse,
    SubmissionResponse,
)
from lms_service.schemas.quiz import (
    AnswerDetail,
    AttemptDetailResponse,
    AttemptSummary,
    ReviewAttemptRequest,
)
from lms_service.services.notification_service import NotificationService
from lms_service.services.quiz_attempt_service import attempt_status, to_attempt_summary
from lms_service.services.scoring import is_passing
from lms_service.utils.exceptions import (
    AccessDeniedException,
    BadRequestException,
    ResourceNotFoundException,
)
from lms_service.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def _ensure_owner(context: dict, instructor_id: int, what: str):
    if context['instructor_id'] != instructor_id:
        logger.warning(
            f"Instructor {instructor_id} tried to access {what} of course {context['course_id']}"
        )
        raise AccessDeniedException(f"You are not the instructor of this {what}'s course")


def _to_submission(context: dict, detail: bool = False):
    submission = context['submission']
    fields = dict(
        id=submission.id,
        assignment_id=submission.assignment_id,
        assignment_title=context['assignment_title'],
        course_id=context['course_id'],
        course_name=context['course_name'],
        user_id=submission.user_id,
        user_name=context['user_name'],
        user_email=context['user_email'],
        submission_text=submission.submission_text,
        file_url=submission.file_url,
        submitted_at=submission.submitted_at,
        score=submission.score,
        max_points=submission.max_points,
        feedback=submission.feedback,
        graded_at=submission.graded_at,
        graded_by=submission.graded_by,
    )
    if not detail:
        return SubmissionResponse(**fields)
    return SubmissionDetailResponse(
        **fields,
        assignment_description=context['assignment_description'],
        assignment_instructions=context['assignment_instructions'],
        assignment_max_points=context['assignment_max_points'],
    )


class GradingService:
    """
    Service for grading assignments and reviewing quiz attempts.
    Students are notified after each grade or review.
    """

    def __init__(
            self,
            settings: Settings,
            submission_repository: AssignmentSubmissionRepository,
            attempt_repository: QuizAttemptRepository,
            quiz_repository: QuizRepository,
            notification_service: NotificationService,
    ):
        self._limit = settings.grading_list_limit
        self._submission_repository = submission_repository
        self._attempt_repository = attempt_repository
        self._quiz_repository = quiz_repository
        self._notification_service = notification_service

    # ==================== ASSIGNMENTS ====================

    async def get_pending_submissions(
            self, instructor_id: int, course_id: Optional[int] = None
    ) -> List[SubmissionResponse]:
        rows = await self._submission_repository.get_pending_submissions(
            instructor_id, course_id=course_id, limit=self._limit
        )
        return [_to_submission(row) for row in rows]

    async def _get_owned_submission(self, submission_id: int, instructor_id: int) -> dict:
        context = await self._submission_repository.get_submission_with_context(submission_id)
        if not context:
            raise ResourceNotFoundException(f"Submission {submission_id} not found")
        _ensure_owner(context, instructor_id, "submission")
        return context

    async def get_submission_details(
            self, submission_id: int, instructor_id: int
    ) -> SubmissionDetailResponse:
        context = await self._get_owned_submission(submission_id, instructor_id)
        return _to_submission(context, detail=True)

    async def grade_submission(
            self,
            submission_id: int,
            request: GradeSubmissionRequest,
            instructor_id: int
    ) -> SubmissionDetailResponse:
        """
        Grade an assignment submission and notify the student.

        Raises:
            ResourceNotFoundException: Submission missing
            AccessDeniedException: Caller does not own the course
            BadRequestException: Score above max points
        """
        context = await self._get_owned_submission(submission_id, instructor_id)

        if request.score > request.max_points:
            raise BadRequestException(
                f"Score {request.score} exceeds max points {request.max_points}"
            )

        submission = await self._submission_repository.update(context['submission'], {
            "score": request.score,
            "max_points": request.max_points,
            "feedback": request.feedback,
            "graded_by": request.graded_by or instructor_id,
            "graded_at": utcnow(),
        })
        context['submission'] = submission
        logger.info(
            f"Submission {submission_id} graded {request.score}/{request.max_points} "
            f"by instructor {instructor_id}"
        )

        await self._notification_service.notify_user(
            user_id=submission.user_id,
            notification_type=NotificationType.SUBMISSION_GRADED,
            title="Assignment graded",
            message=(
                f"Your submission for '{context['assignment_title']}' "
                f"received {request.score}/{request.max_points}"
            ),
            data={"submission_id": submission.id, "assignment_id": submission.assignment_id},
        )

        return _to_submission(context, detail=True)

    # ==================== QUIZ ATTEMPTS ====================

    async def get_quiz_attempts(self, quiz_id: int, instructor_id: int) -> List[AttemptSummary]:
        context = await self._quiz_repository.get_quiz_with_course(quiz_id)
        if not context:
            raise ResourceNotFoundException(f"Quiz {quiz_id} not found")
        _ensure_owner(context, instructor_id, "quiz")

        quiz = context['quiz']
        rows = await self._attempt_repository.get_attempts_for_quiz(quiz_id)
        return [
            to_attempt_summary(
                row['attempt'],
                quiz_title=quiz.title,
                course_id=context['course_id'],
                user_name=row['user_name'],
                user_email=row['user_email'],
            )
            for row in rows
        ]

    async def get_all_attempts(
            self, instructor_id: int, course_id: Optional[int] = None
    ) -> List[AttemptSummary]:
        rows = await self._attempt_repository.get_instructor_attempts(
            instructor_id, course_id=course_id, limit=self._limit
        )
        return [
            to_attempt_summary(
                row['attempt'],
                quiz_title=row['quiz_title'],
                course_id=row['course_id'],
                course_name=row['course_name'],
                user_name=row['user_name'],
                user_email=row['user_email'],
            )
            for row in rows
        ]

    async def _get_owned_attempt(self, attempt_id: int, instructor_id: int) -> dict:
        context = await self._attempt_repository.get_attempt_with_context(attempt_id)
        if not context:
            raise ResourceNotFoundException(f"Attempt {attempt_id} not found")
        _ensure_owner(context, instructor_id, "attempt")
        return context

    async def get_attempt_details(self, attempt_id: int, instructor_id: int) -> AttemptDetailResponse:
        context = await self._get_owned_attempt(attempt_id, instructor_id)
        return await self._attempt_detail(context)

    async def _attempt_detail(self, context: dict) -> AttemptDetailResponse:
        attempt = context['attempt']
        rows = await self._attempt_repository.get_answers_with_questions(attempt.id)

        return AttemptDetailResponse(
            id=attempt.id,
            quiz_id=attempt.quiz_id,
            quiz_title=context['quiz_title'],
            user_id=attempt.user_id,
            user_name=context['user_name'],
            user_email=context['user_email'],
            course_id=context['course_id'],
            course_name=context['course_name'],
            attempt_number=attempt.attempt_number,
            status=attempt_status(attempt),
            score=attempt.score,
            max_score=attempt.max_score,
            is_passed=attempt.is_passed,
            is_timed_out=attempt.is_timed_out,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            reviewed_at=attempt.reviewed_at,
            feedback=attempt.feedback,
            notes=attempt.notes,
            reviewed_by=attempt.reviewed_by,
            answers=[
                AnswerDetail(
                    id=row['answer'].id,
                    question_id=row['answer'].question_id,
                    question_text=row['question_text'],
                    question_type=QuestionType(row['question_type']),
                    max_points=row['max_points'],
                    selected_option_id=row['answer'].selected_option_id,
                    answer_text=row['answer'].answer_text,
                    is_correct=row['answer'].is_correct,
                    points_earned=row['answer'].points_earned,
                    is_graded=row['answer'].is_graded,
                    feedback=row['answer'].feedback,
                )
                for row in rows
            ],
        )

    async def review_attempt(
            self,
            attempt_id: int,
            request: ReviewAttemptRequest,
            instructor_id: int
    ) -> AttemptDetailResponse:
        """
        Apply manual grades to answers of an attempt and recompute its score.

        Raises:
            ResourceNotFoundException: Attempt missing
            AccessDeniedException: Caller does not own the course
            BadRequestException: Attempt not submitted, unknown answer, or
                points outside 0..question points
        """
        context = await self._get_owned_attempt(attempt_id, instructor_id)
        attempt = context['attempt']
        if not attempt.is_completed:
            raise BadRequestException("Attempt has not been submitted")

        rows = await self._attempt_repository.get_answers_with_questions(attempt.id)
        by_answer_id = {row['answer'].id: row for row in rows}

        # validate everything before writing anything
        for grade in request.grades:
            row = by_answer_id.get(grade.answer_id)
            if row is None:
                raise BadRequestException(
                    f"Answer {grade.answer_id} does not belong to attempt {attempt_id}"
                )
            if grade.points_earned < 0 or grade.points_earned > row['max_points']:
                raise BadRequestException(
                    f"Points for answer {grade.answer_id} must be between 0 and {row['max_points']}"
                )

        for grade in request.grades:
            row = by_answer_id[grade.answer_id]
            answer = row['answer']
            answer.points_earned = grade.points_earned
            answer.feedback = grade.feedback
            answer.is_graded = True
            answer.is_correct = grade.points_earned >= row['max_points']

        score = sum(row['answer'].points_earned for row in rows)
        max_score = attempt.max_score or 0.0
        now = utcnow()

        attempt = await self._attempt_repository.update(attempt, {
            "score": score,
            "is_passed": is_passing(score, max_score, context['passing_score']),
            "feedback": request.feedback,
            "notes": request.notes,
            "reviewed_by": instructor_id,
            "reviewed_at": now,
        })
        context['attempt'] = attempt
        logger.info(
            f"Attempt {attempt_id} reviewed by instructor {instructor_id}: "
            f"{len(request.grades)} grade(s), score {score}/{max_score}"
        )

        await self._notification_service.notify_user(
            user_id=attempt.user_id,
            notification_type=NotificationType.QUIZ_REVIEWED,
            title="Quiz reviewed",
            message=f"Your attempt on '{context['quiz_title']}' was reviewed: {score}/{max_score}",
            data={"attempt_id": attempt.id, "quiz_id": attempt.quiz_id},
        )

        return await self._attempt_detail(context)
