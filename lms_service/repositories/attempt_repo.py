"""
Quiz Attempt Repository - Data access layer for attempts and their answers
"""
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.course_models import Course, Section
from lms_service.model.quiz_models import Quiz, Question, QuizAttempt, QuizAnswer
from lms_service.model.user_models import User
from lms_service.repositories.base_repo import BaseRepository


class QuizAttemptRepository(BaseRepository[QuizAttempt]):
    """
    Repository for QuizAttempt and QuizAnswer entities
    """

    def __init__(self, session: AsyncSession):
        super().__init__(QuizAttempt, session)

    # ==================== STUDENT SIDE ====================

    async def get_active_attempt(self, quiz_id: int, user_id: int) -> Optional[QuizAttempt]:
        """Most recent attempt of the user on the quiz that is not completed."""
        query = (
            select(QuizAttempt)
            .where(QuizAttempt.quiz_id == quiz_id)
            .where(QuizAttempt.user_id == user_id)
            .where(QuizAttempt.completed_at.is_(None))
            .where(QuizAttempt.is_deleted.is_(False))
            .order_by(QuizAttempt.attempt_number.desc())
            .limit(1)
        )

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_last_attempt_number(self, quiz_id: int, user_id: int) -> int:
        query = (
            select(func.max(QuizAttempt.attempt_number))
            .where(QuizAttempt.quiz_id == quiz_id)
            .where(QuizAttempt.user_id == user_id)
        )

        result = await self.session.execute(query)
        return result.scalar() or 0

    async def claim_for_submission(self, attempt_id: int, completed_at: datetime) -> bool:
        """
        Atomically mark an attempt completed.

        Only succeeds while completed_at is still null, so of two concurrent
        submissions exactly one wins.

        Returns:
            True if this call finalized the attempt
        """
        stmt = (
            update(QuizAttempt)
            .where(QuizAttempt.id == attempt_id)
            .where(QuizAttempt.completed_at.is_(None))
            .values(completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def add_answers(self, answers: List[QuizAnswer]) -> None:
        self.session.add_all(answers)
        await self.session.flush()

    async def get_answers(self, attempt_id: int) -> List[QuizAnswer]:
        query = (
            select(QuizAnswer)
            .where(QuizAnswer.attempt_id == attempt_id)
            .where(QuizAnswer.is_deleted.is_(False))
            .order_by(QuizAnswer.id)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_user_attempts(self, user_id: int) -> Sequence[dict]:
        query = (
            select(QuizAttempt, Quiz.title.label('quiz_title'))
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .where(QuizAttempt.user_id == user_id)
            .where(QuizAttempt.is_deleted.is_(False))
            .order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
        )

        result = await self.session.execute(query)
        return [
            {'attempt': row.QuizAttempt, 'quiz_title': row.quiz_title}
            for row in result.all()
        ]

    async def get_expirable_attempts(self) -> Sequence[dict]:
        """
        In-progress attempts of timed quizzes, paused ones included. Deadline
        and pause-length filtering is left to the caller so the query stays
        dialect-neutral.
        """
        query = (
            select(QuizAttempt, Quiz.time_limit_minutes.label('time_limit_minutes'))
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .where(QuizAttempt.completed_at.is_(None))
            .where(QuizAttempt.is_deleted.is_(False))
            .where(Quiz.time_limit_minutes.is_not(None))
        )

        result = await self.session.execute(query)
        return [
            {'attempt': row.QuizAttempt, 'time_limit_minutes': row.time_limit_minutes}
            for row in result.all()
        ]

    # ==================== INSTRUCTOR SIDE ====================

    async def get_attempts_for_quiz(self, quiz_id: int) -> Sequence[dict]:
        """All attempts on a quiz with the student's name, completed newest first."""
        query = (
            select(
                QuizAttempt,
                User.username.label('user_name'),
                User.email.label('user_email'),
            )
            .join(User, QuizAttempt.user_id == User.id)
            .where(QuizAttempt.quiz_id == quiz_id)
            .where(QuizAttempt.is_deleted.is_(False))
            .order_by(QuizAttempt.completed_at.desc().nulls_last(), QuizAttempt.id.desc())
        )

        result = await self.session.execute(query)
        return [
            {
                'attempt': row.QuizAttempt,
                'user_name': row.user_name,
                'user_email': row.user_email,
            }
            for row in result.all()
        ]

    async def get_attempt_with_context(self, attempt_id: int) -> Optional[dict]:
        """
        Get an attempt joined with its quiz, owning course and student.

        SQL equivalent:
            SELECT a.*, q.title, c.id, c.title, c.instructor_id, u.username, u.email
            FROM quiz_attempts a
            JOIN quizzes q ON a.quiz_id = q.id
            JOIN course_sections s ON q.section_id = s.id
            JOIN courses c ON s.course_id = c.id
            JOIN users u ON a.user_id = u.id
            WHERE a.id = :attempt_id AND NOT a.is_deleted
        """
        query = (
            select(
                QuizAttempt,
                Quiz.title.label('quiz_title'),
                Quiz.passing_score.label('passing_score'),
                Course.id.label('course_id'),
                Course.title.label('course_name'),
                Course.instructor_id.label('instructor_id'),
                User.username.label('user_name'),
                User.email.label('user_email'),
            )
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .join(Section, Quiz.section_id == Section.id)
            .join(Course, Section.course_id == Course.id)
            .join(User, QuizAttempt.user_id == User.id)
            .where(QuizAttempt.id == attempt_id)
            .where(QuizAttempt.is_deleted.is_(False))
            .limit(1)
        )

        result = await self.session.execute(query)
        row = result.first()
        if not row:
            return None

        return {
            'attempt': row.QuizAttempt,
            'quiz_title': row.quiz_title,
            'passing_score': row.passing_score,
            'course_id': row.course_id,
            'course_name': row.course_name,
            'instructor_id': row.instructor_id,
            'user_name': row.user_name,
            'user_email': row.user_email,
        }

    async def get_answers_with_questions(self, attempt_id: int) -> Sequence[dict]:
        query = (
            select(
                QuizAnswer,
                Question.question_text.label('question_text'),
                Question.question_type.label('question_type'),
                Question.points.label('max_points'),
            )
            .join(Question, QuizAnswer.question_id == Question.id)
            .where(QuizAnswer.attempt_id == attempt_id)
            .where(QuizAnswer.is_deleted.is_(False))
            .order_by(QuizAnswer.id)
        )

        result = await self.session.execute(query)
        return [
            {
                'answer': row.QuizAnswer,
                'question_text': row.question_text,
                'question_type': row.question_type,
                'max_points': row.max_points,
            }
            for row in result.all()
        ]

    async def get_instructor_attempts(
        self,
        instructor_id: int,
        course_id: Optional[int] = None,
        limit: int = 100
    ) -> Sequence[dict]:
        """Attempts across every course the instructor owns."""
        query = (
            select(
                QuizAttempt,
                Quiz.title.label('quiz_title'),
                Course.id.label('course_id'),
                Course.title.label('course_name'),
                User.username.label('user_name'),
                User.email.label('user_email'),
            )
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .join(Section, Quiz.section_id == Section.id)
            .join(Course, Section.course_id == Course.id)
            .join(User, QuizAttempt.user_id == User.id)
            .where(QuizAttempt.is_deleted.is_(False))
            .where(Course.instructor_id == instructor_id)
        )

        if course_id is not None:
            query = query.where(Course.id == course_id)

        query = query.order_by(
            QuizAttempt.completed_at.desc().nulls_last(), QuizAttempt.id.desc()
        ).limit(limit)

        result = await self.session.execute(query)
        return [
            {
                'attempt': row.QuizAttempt,
                'quiz_title': row.quiz_title,
                'course_id': row.course_id,
                'course_name': row.course_name,
                'user_name': row.user_name,
                'user_email': row.user_email,
            }
            for row in result.all()
        ]
