"""
Quiz Attempt Service - Student side of the quiz lifecycle.

Lifecycle:
    NotStarted -> InProgress (paused flag orthogonal) -> Submitted

Time is server-authoritative:
    deadline = started_at + time_limit + paused_seconds
A submission is on time while now <= deadline + grace; a late submission
keeps only the drafts buffered before the deadline. A pause longer than
quiz_max_pause_seconds ends the attempt the same way.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from redis.exceptions import LockError

from lms_service.clients.redis_client import RedisClient
from lms_service.config import Settings
from lms_service.model.enums import AttemptStatus, NotificationType, QuestionType
from lms_service.model.quiz_models import Quiz, Question, QuizAttempt, QuizAnswer
from lms_service.repositories.attempt_repo import QuizAttemptRepository
from lms_service.repositories.quiz_repo import QuizRepository
from lms_service.schemas.quiz import (
    AnswerInput,
    AnswerResult,
    AttemptResultResponse,
    AttemptSummary,
    DraftAnswerRequest,
    DraftAnswerResponse,
    FlagQuestionResponse,
    OptionForTaking,
    PauseStateResponse,
    QuestionForTaking,
    QuizQuestionsResponse,
    QuizSummary,
    StartQuizResponse,
    SubmitQuizResponse,
    TimeRemainingResponse,
)
from lms_service.services.access_service import AccessService
from lms_service.services.answer_buffer import AnswerBuffer
from lms_service.services.auth_service import CurrentUser
from lms_service.services.notification_service import NotificationService
from lms_service.services.scoring import score_answers, is_passing
from lms_service.utils.exceptions import (
    AccessDeniedException,
    BadRequestException,
    ConflictException,
    ResourceNotFoundException,
)
from lms_service.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


# =============================
#   Clock helpers
# =============================
def attempt_deadline(attempt: QuizAttempt, quiz: Quiz) -> Optional[datetime]:
    """Server deadline of the attempt, None for untimed quizzes."""
    if not quiz.time_limit_minutes:
        return None
    return attempt.started_at + timedelta(
        minutes=quiz.time_limit_minutes, seconds=attempt.paused_seconds or 0
    )


def is_attempt_expired(
        attempt: QuizAttempt, quiz: Quiz, now: datetime, grace_seconds: int = 0
) -> bool:
    deadline = attempt_deadline(attempt, quiz)
    if deadline is None:
        return False
    # a paused clock stands still at paused_at
    reference = attempt.paused_at or now
    return reference > deadline + timedelta(seconds=grace_seconds)


def attempt_status(attempt: QuizAttempt) -> AttemptStatus:
    if attempt.is_completed:
        return AttemptStatus.SUBMITTED
    if attempt.is_paused:
        return AttemptStatus.PAUSED
    return AttemptStatus.IN_PROGRESS


def to_attempt_summary(attempt: QuizAttempt, **context) -> AttemptSummary:
    return AttemptSummary(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        user_id=attempt.user_id,
        attempt_number=attempt.attempt_number,
        status=attempt_status(attempt),
        score=attempt.score,
        max_score=attempt.max_score,
        is_passed=attempt.is_passed,
        is_timed_out=attempt.is_timed_out,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        reviewed_at=attempt.reviewed_at,
        **context,
    )


def _question_for_taking(question: Question) -> QuestionForTaking:
    return QuestionForTaking(
        id=question.id,
        question_type=QuestionType(question.question_type),
        question_text=question.question_text,
        points=question.points,
        options=[
            OptionForTaking(
                id=option.id,
                option_text=option.option_text,
                display_order=option.display_order or 0,
            )
            for option in question.options
            if not option.is_deleted
        ],
    )


class QuizAttemptService:
    """
    Service for taking quizzes: start, draft answers, pause/resume, submit.

    Submission is guarded twice: a Redis lock per attempt (an in-process
    lock when Redis is not configured) and a conditional UPDATE on completed_at, so an
    attempt is finalized exactly once.
    """

    def __init__(
            self,
            settings: Settings,
            quiz_repository: QuizRepository,
            attempt_repository: QuizAttemptRepository,
            access_service: AccessService,
            answer_buffer: AnswerBuffer,
            redis_client: RedisClient,
            notification_service: NotificationService,
    ):
        self._settings = settings
        self._quiz_repository = quiz_repository
        self._attempt_repository = attempt_repository
        self._access_service = access_service
        self._answer_buffer = answer_buffer
        self._redis_client = redis_client
        self._notification_service = notification_service

    # ==================== LOOKUPS ====================

    async def _get_quiz_context(self, quiz_id: int) -> dict:
        context = await self._quiz_repository.get_quiz_with_course(quiz_id)
        if not context:
            raise ResourceNotFoundException(f"Quiz {quiz_id} not found")
        return context

    async def _get_own_attempt(self, attempt_id: int, user: CurrentUser) -> QuizAttempt:
        attempt = await self._attempt_repository.get_by_id(attempt_id)
        if not attempt or attempt.user_id != user.user_id:
            raise ResourceNotFoundException(f"Attempt {attempt_id} not found")
        return attempt

    async def _get_attempt_quiz(self, attempt: QuizAttempt) -> Quiz:
        quiz = await self._quiz_repository.get_by_id(attempt.quiz_id, include_deleted=True)
        if not quiz:
            raise ResourceNotFoundException(f"Quiz {attempt.quiz_id} not found")
        return quiz

    @staticmethod
    def _require_in_progress(attempt: QuizAttempt):
        if attempt.is_completed:
            raise BadRequestException("Attempt already submitted")

    async def _ordered_questions(self, quiz: Quiz, attempt: QuizAttempt) -> List[Question]:
        questions = await self._quiz_repository.get_quiz_questions(quiz.id)
        if quiz.shuffle_questions:
            # seeded by attempt so a resumed attempt keeps its order
            random.Random(attempt.id).shuffle(questions)
        return questions

    async def _question_ids(self, quiz_id: int) -> set:
        return {q.id for q in await self._quiz_repository.get_quiz_questions(quiz_id)}

    # ==================== START ====================

    async def start_quiz(self, quiz_id: int, user: CurrentUser) -> StartQuizResponse:
        """
        Start a new attempt, or return the caller's in-progress one.

        Raises:
            ResourceNotFoundException: Quiz missing or deleted
            BadRequestException: Outside the availability window, or max attempts reached
            AccessDeniedException: Caller cannot access the quiz's course
        """
        context = await self._get_quiz_context(quiz_id)
        quiz: Quiz = context['quiz']
        now = utcnow()

        if quiz.available_from and now < quiz.available_from:
            raise BadRequestException("Quiz is not available yet")
        if quiz.available_until and now > quiz.available_until:
            raise BadRequestException("Quiz is no longer available")

        if not await self._access_service.can_access_course(
                context['course_id'], context['instructor_id'], user
        ):
            raise AccessDeniedException("Not enrolled in course")

        active = await self._attempt_repository.get_active_attempt(quiz_id, user.user_id)
        if active:
            if not is_attempt_expired(active, quiz, now) and not self._is_pause_exhausted(active, now):
                logger.info(f"User {user.user_id} resumed attempt {active.id} of quiz {quiz_id}")
                return await self._start_response(quiz, active, is_resumed=True)

            logger.info(f"Finalizing expired attempt {active.id} before starting a new one")
            await self._finalize_quietly(active, quiz, timed_out=True)

        if quiz.max_attempts:
            used = await self._attempt_repository.count_by_filters(
                {"quiz_id": quiz_id, "user_id": user.user_id}
            )
            if used >= quiz.max_attempts:
                raise BadRequestException(
                    f"Maximum attempts reached ({quiz.max_attempts})"
                )

        last_number = await self._attempt_repository.get_last_attempt_number(quiz_id, user.user_id)
        attempt = await self._attempt_repository.create({
            "quiz_id": quiz_id,
            "user_id": user.user_id,
            "attempt_number": last_number + 1,
            "started_at": now,
            "paused_seconds": 0,
            "flagged_question_ids": [],
        })
        logger.info(
            f"User {user.user_id} started attempt {attempt.id} "
            f"(#{attempt.attempt_number}) of quiz {quiz_id}"
        )

        return await self._start_response(quiz, attempt, is_resumed=False)

    async def _start_response(
            self, quiz: Quiz, attempt: QuizAttempt, is_resumed: bool
    ) -> StartQuizResponse:
        questions = await self._ordered_questions(quiz, attempt)
        return StartQuizResponse(
            attempt_id=attempt.id,
            attempt_number=attempt.attempt_number,
            started_at=attempt.started_at,
            deadline=attempt_deadline(attempt, quiz),
            time_limit_minutes=quiz.time_limit_minutes,
            is_resumed=is_resumed,
            quiz=QuizSummary(
                id=quiz.id,
                title=quiz.title,
                description=quiz.description,
                time_limit_minutes=quiz.time_limit_minutes,
                max_attempts=quiz.max_attempts,
                passing_score=quiz.passing_score,
                question_count=len(questions),
            ),
            questions=[_question_for_taking(q) for q in questions],
        )

    # ==================== TAKING ====================

    async def get_questions_for_taking(self, quiz_id: int, user: CurrentUser) -> QuizQuestionsResponse:
        context = await self._get_quiz_context(quiz_id)
        quiz: Quiz = context['quiz']

        attempt = await self._attempt_repository.get_active_attempt(quiz_id, user.user_id)
        if not attempt:
            raise BadRequestException("No active attempt for this quiz")

        questions = await self._ordered_questions(quiz, attempt)
        return QuizQuestionsResponse(
            attempt_id=attempt.id,
            questions=[_question_for_taking(q) for q in questions],
            flagged_question_ids=list(attempt.flagged_question_ids or []),
        )

    async def answer_question(
            self,
            attempt_id: int,
            question_id: int,
            answer: DraftAnswerRequest,
            user: CurrentUser
    ) -> DraftAnswerResponse:
        """Buffer a draft answer; nothing is written to the database."""
        attempt = await self._get_own_attempt(attempt_id, user)
        self._require_in_progress(attempt)
        quiz = await self._get_attempt_quiz(attempt)

        if attempt.is_paused:
            raise BadRequestException("Attempt is paused")
        if is_attempt_expired(attempt, quiz, utcnow()):
            raise BadRequestException("Attempt time has expired")
        if question_id not in await self._question_ids(quiz.id):
            raise BadRequestException(f"Question {question_id} is not part of this quiz")

        await self._answer_buffer.save(attempt_id, question_id, {
            "selected_option_id": answer.selected_option_id,
            "answer_text": answer.answer_text,
        })
        return DraftAnswerResponse(attempt_id=attempt_id, question_id=question_id)

    async def flag_question(
            self, attempt_id: int, question_id: int, user: CurrentUser
    ) -> FlagQuestionResponse:
        """Toggle a question in the attempt's review flags."""
        attempt = await self._get_own_attempt(attempt_id, user)
        self._require_in_progress(attempt)

        if question_id not in await self._question_ids(attempt.quiz_id):
            raise BadRequestException(f"Question {question_id} is not part of this quiz")

        flagged = list(attempt.flagged_question_ids or [])
        if question_id in flagged:
            flagged.remove(question_id)
        else:
            flagged.append(question_id)

        # JSON column: assign a new list so the change is tracked
        attempt = await self._attempt_repository.update(attempt, {"flagged_question_ids": flagged})
        return FlagQuestionResponse(
            attempt_id=attempt.id,
            question_id=question_id,
            is_flagged=question_id in flagged,
            flagged_question_ids=flagged,
        )

    # ==================== CLOCK ====================

    async def pause_attempt(self, attempt_id: int, user: CurrentUser) -> PauseStateResponse:
        attempt = await self._get_own_attempt(attempt_id, user)
        self._require_in_progress(attempt)
        quiz = await self._get_attempt_quiz(attempt)

        if not attempt.is_paused:
            now = utcnow()
            if is_attempt_expired(attempt, quiz, now):
                raise BadRequestException("Attempt time has expired")
            attempt = await self._attempt_repository.update(attempt, {"paused_at": now})
            logger.info(f"Attempt {attempt_id} paused")

        return self._pause_state(attempt)

    async def resume_attempt(self, attempt_id: int, user: CurrentUser) -> PauseStateResponse:
        attempt = await self._get_own_attempt(attempt_id, user)
        self._require_in_progress(attempt)

        if attempt.is_paused:
            now = utcnow()
            if self._is_pause_exhausted(attempt, now):
                quiz = await self._get_attempt_quiz(attempt)
                await self._finalize_quietly(attempt, quiz, timed_out=True)
                raise BadRequestException("Attempt was paused too long and has been submitted")

            paused_for = int((now - attempt.paused_at).total_seconds())
            attempt = await self._attempt_repository.update(attempt, {
                "paused_at": None,
                "paused_seconds": (attempt.paused_seconds or 0) + max(paused_for, 0),
            })
            logger.info(f"Attempt {attempt_id} resumed after {paused_for}s pause")

        return self._pause_state(attempt)

    @staticmethod
    def _pause_state(attempt: QuizAttempt) -> PauseStateResponse:
        return PauseStateResponse(
            attempt_id=attempt.id,
            is_paused=attempt.is_paused,
            paused_at=attempt.paused_at,
            paused_seconds=attempt.paused_seconds or 0,
        )

    async def get_time_remaining(self, attempt_id: int, user: CurrentUser) -> TimeRemainingResponse:
        attempt = await self._get_own_attempt(attempt_id, user)
        quiz = await self._get_attempt_quiz(attempt)
        deadline = attempt_deadline(attempt, quiz)

        if deadline is None:
            return TimeRemainingResponse(
                attempt_id=attempt.id,
                remaining_seconds=None,
                deadline=None,
                is_paused=attempt.is_paused,
                is_expired=False,
            )

        if attempt.is_completed:
            remaining = 0
        else:
            reference = attempt.paused_at or utcnow()
            remaining = max(0, int((deadline - reference).total_seconds()))

        return TimeRemainingResponse(
            attempt_id=attempt.id,
            remaining_seconds=remaining,
            deadline=deadline,
            is_paused=attempt.is_paused,
            is_expired=remaining == 0,
        )

    # ==================== SUBMIT ====================

    async def submit_quiz(
            self,
            attempt_id: int,
            answers: Optional[List[AnswerInput]],
            user: CurrentUser
    ) -> SubmitQuizResponse:
        """
        Score and finalize an attempt.

        Args:
            attempt_id: ID of the caller's attempt
            answers: Answers to score; None means use the buffered drafts.
                Given answers override drafts question by question.
            user: Caller

        Raises:
            ResourceNotFoundException: Attempt missing or not the caller's
            ConflictException: Attempt already submitted (or being submitted)
        """
        attempt = await self._get_own_attempt(attempt_id, user)
        if attempt.is_completed:
            raise ConflictException("Quiz already submitted")
        quiz = await self._get_attempt_quiz(attempt)

        overrides = None
        if answers is not None:
            overrides = {
                a.question_id: {
                    "selected_option_id": a.selected_option_id,
                    "answer_text": a.answer_text,
                }
                for a in answers
            }

        try:
            async with self._redis_client.acquire_attempt_lock(attempt_id):
                return await self._finalize(attempt, quiz, overrides)
        except LockError:
            logger.warning(f"Concurrent submission rejected for attempt {attempt_id}")
            raise ConflictException("Quiz already submitted")

    async def _finalize(
            self,
            attempt: QuizAttempt,
            quiz: Quiz,
            overrides: Optional[Dict[int, dict]],
            timed_out: bool = False
    ) -> SubmitQuizResponse:
        now = utcnow()
        drafts = await self._answer_buffer.get_all(attempt.id)
        is_late = timed_out or is_attempt_expired(
            attempt, quiz, now, self._settings.quiz_submit_grace_seconds
        )

        if is_late or overrides is None:
            final_answers = drafts
        else:
            final_answers = {**drafts, **overrides}

        if not await self._attempt_repository.claim_for_submission(attempt.id, now):
            await self._attempt_repository.rollback()
            raise ConflictException("Quiz already submitted")

        questions = await self._quiz_repository.get_quiz_questions(quiz.id)
        result = score_answers(questions, final_answers)

        await self._attempt_repository.add_answers([
            QuizAnswer(
                attempt_id=attempt.id,
                question_id=scored.question_id,
                selected_option_id=scored.selected_option_id,
                answer_text=scored.answer_text,
                is_correct=scored.is_correct,
                points_earned=scored.points_earned,
                is_graded=scored.is_graded,
            )
            for scored in result.answers
        ])

        update = {
            "completed_at": now,
            "score": result.score,
            "max_score": result.max_score,
            "is_passed": is_passing(result.score, result.max_score, quiz.passing_score),
            "is_timed_out": is_late,
        }
        if attempt.paused_at is not None:
            paused_for = int((now - attempt.paused_at).total_seconds())
            update["paused_seconds"] = (attempt.paused_seconds or 0) + max(paused_for, 0)
            update["paused_at"] = None

        attempt = await self._attempt_repository.update(attempt, update)
        await self._answer_buffer.clear(attempt.id)

        logger.info(
            f"Attempt {attempt.id} submitted: {result.score}/{result.max_score} "
            f"(passed={attempt.is_passed}, timed_out={is_late})"
        )

        if result.pending_manual_grading:
            await self._notify_instructor(attempt, quiz)

        return SubmitQuizResponse(
            attempt_id=attempt.id,
            score=result.score,
            max_score=result.max_score,
            is_passed=attempt.is_passed,
            passing_score=quiz.passing_score,
            pending_manual_grading=result.pending_manual_grading,
            is_timed_out=is_late,
        )

    async def _notify_instructor(self, attempt: QuizAttempt, quiz: Quiz):
        context = await self._quiz_repository.get_quiz_with_course(quiz.id)
        if not context:
            return
        await self._notification_service.notify_user(
            user_id=context['instructor_id'],
            notification_type=NotificationType.QUIZ_SUBMITTED,
            title="Quiz attempt awaiting review",
            message=f"An attempt on '{quiz.title}' has answers that need manual grading",
            data={"attempt_id": attempt.id, "quiz_id": quiz.id},
        )

    def _is_pause_exhausted(self, attempt: QuizAttempt, now: datetime) -> bool:
        """A pause longer than quiz_max_pause_seconds ends the attempt."""
        if attempt.paused_at is None:
            return False
        return now - attempt.paused_at > timedelta(seconds=self._settings.quiz_max_pause_seconds)

    async def _finalize_quietly(self, attempt: QuizAttempt, quiz: Quiz, timed_out: bool = False) -> bool:
        """Finalize an expired attempt; False if another worker got there first."""
        try:
            async with self._redis_client.acquire_attempt_lock(attempt.id):
                await self._finalize(attempt, quiz, None, timed_out=timed_out)
            return True
        except (LockError, ConflictException):
            logger.debug(f"Attempt {attempt.id} already finalized elsewhere")
            return False

    async def finalize_expired_attempts(self) -> int:
        """
        Finalize every running attempt whose deadline (plus grace) has passed.

        Returns:
            Number of attempts finalized by this call
        """
        now = utcnow()
        grace = timedelta(seconds=self._settings.quiz_submit_grace_seconds)

        # collect ids first: a rollback inside the loop expires loaded rows
        expired_ids = []
        for row in await self._attempt_repository.get_expirable_attempts():
            attempt = row['attempt']
            deadline = attempt.started_at + timedelta(
                minutes=row['time_limit_minutes'], seconds=attempt.paused_seconds or 0
            )
            if self._is_pause_exhausted(attempt, now) or (attempt.paused_at or now) > deadline + grace:
                expired_ids.append(attempt.id)

        finalized = 0
        for attempt_id in expired_ids:
            attempt = await self._attempt_repository.get_by_id(attempt_id)
            if not attempt or attempt.is_completed:
                continue
            quiz = await self._get_attempt_quiz(attempt)
            if await self._finalize_quietly(attempt, quiz, timed_out=True):
                finalized += 1

        if finalized:
            logger.info(f"Finalized {finalized} expired attempt(s)")
        return finalized

    # ==================== RESULTS ====================

    async def get_result(self, attempt_id: int, user: CurrentUser) -> AttemptResultResponse:
        attempt = await self._get_own_attempt(attempt_id, user)
        if not attempt.is_completed:
            raise BadRequestException("Attempt has not been submitted")
        quiz = await self._get_attempt_quiz(attempt)

        answers = await self._attempt_repository.get_answers(attempt.id)

        keys: Dict[int, Question] = {}
        if quiz.show_correct_answers:
            keys = {q.id: q for q in await self._quiz_repository.get_quiz_questions(quiz.id)}

        results = []
        for answer in answers:
            question = keys.get(answer.question_id)
            results.append(AnswerResult(
                id=answer.id,
                question_id=answer.question_id,
                selected_option_id=answer.selected_option_id,
                answer_text=answer.answer_text,
                is_correct=answer.is_correct,
                points_earned=answer.points_earned,
                is_graded=answer.is_graded,
                feedback=answer.feedback,
                correct_option_ids=(
                    [o.id for o in question.options if o.is_correct and not o.is_deleted]
                    if question else None
                ),
                explanation=question.explanation if question else None,
            ))

        return AttemptResultResponse(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            attempt_number=attempt.attempt_number,
            score=attempt.score,
            max_score=attempt.max_score,
            is_passed=attempt.is_passed,
            is_timed_out=attempt.is_timed_out,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            feedback=attempt.feedback,
            reviewed_at=attempt.reviewed_at,
            answers=results,
        )

    async def get_my_attempts(self, user: CurrentUser) -> List[AttemptSummary]:
        rows = await self._attempt_repository.get_user_attempts(user.user_id)
        return [
            to_attempt_summary(row['attempt'], quiz_title=row['quiz_title'])
            for row in rows
        ]
