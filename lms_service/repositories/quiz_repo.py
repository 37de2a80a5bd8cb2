"""
Quiz Repository - Data access layer for quizzes and their question sets
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.course_models import Course, Section
from lms_service.model.quiz_models import Quiz, Question, QuizQuestion
from lms_service.repositories.base_repo import BaseRepository


class QuizRepository(BaseRepository[Quiz]):
    """
    Repository for Quiz entities and the question bank entries linked to them.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Quiz, session)

    async def get_quiz_with_course(self, quiz_id: int) -> Optional[dict]:
        """
        Get a quiz with the id and owner of the course it belongs to.

        Args:
            quiz_id: ID of the quiz

        Returns:
            {"quiz": Quiz, "course_id": int, "instructor_id": int} or None when
            the quiz, its section or its course is missing or soft-deleted
        """
        query = (
            select(
                Quiz,
                Course.id.label('course_id'),
                Course.instructor_id.label('instructor_id'),
            )
            .join(Section, Quiz.section_id == Section.id)
            .join(Course, Section.course_id == Course.id)
            .where(Quiz.id == quiz_id)
            .where(Quiz.is_deleted.is_(False))
            .where(Section.is_deleted.is_(False))
            .where(Course.is_deleted.is_(False))
            .limit(1)
        )

        result = await self.session.execute(query)
        row = result.first()
        if not row:
            return None

        return {
            'quiz': row.Quiz,
            'course_id': row.course_id,
            'instructor_id': row.instructor_id,
        }

    async def get_quiz_questions(self, quiz_id: int) -> List[Question]:
        """
        Get the quiz's questions (options eagerly loaded) in display order.
        """
        query = (
            select(Question)
            .join(QuizQuestion, QuizQuestion.question_id == Question.id)
            .where(QuizQuestion.quiz_id == quiz_id)
            .where(QuizQuestion.is_deleted.is_(False))
            .where(Question.is_deleted.is_(False))
            .order_by(QuizQuestion.display_order, QuizQuestion.id)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())
