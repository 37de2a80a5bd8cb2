"""
Quiz taking endpoints for students
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Body

from lms_service.dependencies.services import get_quiz_attempt_service
from lms_service.schemas.generic import ApiResponse
from lms_service.schemas.quiz import (
    AttemptResultResponse,
    AttemptSummary,
    DraftAnswerRequest,
    DraftAnswerResponse,
    FlagQuestionResponse,
    PauseStateResponse,
    QuizQuestionsResponse,
    StartQuizResponse,
    SubmitQuizRequest,
    SubmitQuizResponse,
    TimeRemainingResponse,
)
from lms_service.services.auth_service import AuthService, CurrentUser
from lms_service.services.quiz_attempt_service import QuizAttemptService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lms/quizzes", tags=["Quiz Attempts"])


@router.get(
    "/my-attempts",
    response_model=ApiResponse[List[AttemptSummary]],
    summary="List My Attempts",
)
async def get_my_attempts(
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[List[AttemptSummary]]:
    attempts = await service.get_my_attempts(user)
    return ApiResponse[List[AttemptSummary]].success(data=attempts)


@router.post(
    "/{quiz_id}/start",
    response_model=ApiResponse[StartQuizResponse],
    summary="Start Quiz",
    description="Start a new attempt, or return the caller's attempt that is still running.",
)
async def start_quiz(
        quiz_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[StartQuizResponse]:
    """
    Raises:
        - 400 Bad Request: Quiz not available or max attempts reached
        - 403 Forbidden: Not enrolled in course
        - 404 Not Found: Quiz missing
    """
    result = await service.start_quiz(quiz_id, user)
    message = "Attempt resumed" if result.is_resumed else "Attempt started"
    return ApiResponse[StartQuizResponse].success(data=result, message=message)


@router.get(
    "/{quiz_id}/questions",
    response_model=ApiResponse[QuizQuestionsResponse],
    summary="Get Questions For Active Attempt",
)
async def get_questions(
        quiz_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[QuizQuestionsResponse]:
    result = await service.get_questions_for_taking(quiz_id, user)
    return ApiResponse[QuizQuestionsResponse].success(data=result)


@router.put(
    "/attempts/{attempt_id}/answers/{question_id}",
    response_model=ApiResponse[DraftAnswerResponse],
    summary="Save Draft Answer",
)
async def answer_question(
        attempt_id: int,
        question_id: int,
        request: DraftAnswerRequest,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[DraftAnswerResponse]:
    result = await service.answer_question(attempt_id, question_id, request, user)
    return ApiResponse[DraftAnswerResponse].success(data=result, message="Answer saved")


@router.post(
    "/attempts/{attempt_id}/submit",
    response_model=ApiResponse[SubmitQuizResponse],
    summary="Submit Attempt",
)
async def submit_quiz(
        attempt_id: int,
        request: Optional[SubmitQuizRequest] = Body(None),
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[SubmitQuizResponse]:
    """
    Score and finalize an attempt.

    - **answers**: optional; omitted answers fall back to saved drafts

    Raises:
        - 404 Not Found: Attempt missing or not yours
        - 409 Conflict: Attempt already submitted
    """
    answers = request.answers if request else None
    logger.info(f"User {user.user_id} submitting attempt {attempt_id}")
    result = await service.submit_quiz(attempt_id, answers, user)
    return ApiResponse[SubmitQuizResponse].success(data=result, message="Quiz submitted")


@router.get(
    "/attempts/{attempt_id}/result",
    response_model=ApiResponse[AttemptResultResponse],
    summary="Get Attempt Result",
)
async def get_result(
        attempt_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[AttemptResultResponse]:
    result = await service.get_result(attempt_id, user)
    return ApiResponse[AttemptResultResponse].success(data=result)


@router.post(
    "/attempts/{attempt_id}/pause",
    response_model=ApiResponse[PauseStateResponse],
    summary="Pause Attempt",
)
async def pause_attempt(
        attempt_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[PauseStateResponse]:
    result = await service.pause_attempt(attempt_id, user)
    return ApiResponse[PauseStateResponse].success(data=result)


@router.post(
    "/attempts/{attempt_id}/resume",
    response_model=ApiResponse[PauseStateResponse],
    summary="Resume Attempt",
)
async def resume_attempt(
        attempt_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[PauseStateResponse]:
    result = await service.resume_attempt(attempt_id, user)
    return ApiResponse[PauseStateResponse].success(data=result)


@router.get(
    "/attempts/{attempt_id}/time-remaining",
    response_model=ApiResponse[TimeRemainingResponse],
    summary="Get Time Remaining",
)
async def get_time_remaining(
        attempt_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[TimeRemainingResponse]:
    result = await service.get_time_remaining(attempt_id, user)
    return ApiResponse[TimeRemainingResponse].success(data=result)


@router.post(
    "/attempts/{attempt_id}/flag/{question_id}",
    response_model=ApiResponse[FlagQuestionResponse],
    summary="Toggle Question Flag",
)
async def flag_question(
        attempt_id: int,
        question_id: int,
        service: QuizAttemptService = Depends(get_quiz_attempt_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[FlagQuestionResponse]:
    result = await service.flag_question(attempt_id, question_id, user)
    return ApiResponse[FlagQuestionResponse].success(data=result)
