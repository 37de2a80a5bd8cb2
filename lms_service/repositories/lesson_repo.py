"""
Lesson Repository - Data access layer for lessons with course/section context
"""
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.course_models import Course, Section, Lesson
from lms_service.repositories.base_repo import BaseRepository


class LessonRepository(BaseRepository[Lesson]):
    """
    Repository for Lesson entity with course/section context queries
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Lesson, session)

    async def get_lesson_with_course(self, lesson_id: int) -> Optional[dict]:
        """
        Get a lesson together with the id and owner of its course.

        A lesson counts as missing when the lesson, its section or its
        course is soft-deleted.

        SQL equivalent:
            SELECT l.*, c.id, c.instructor_id
            FROM lessons l
            JOIN course_sections s ON l.section_id = s.id
            JOIN courses c ON s.course_id = c.id
            WHERE l.id = :lesson_id AND NOT l.is_deleted
              AND NOT s.is_deleted AND NOT c.is_deleted
        """
        query = (
            select(
                Lesson,
                Course.id.label('course_id'),
                Course.instructor_id.label('instructor_id'),
            )
            .join(Section, Lesson.section_id == Section.id)
            .join(Course, Section.course_id == Course.id)
            .where(Lesson.id == lesson_id)
            .where(Lesson.is_deleted.is_(False))
            .where(Section.is_deleted.is_(False))
            .where(Course.is_deleted.is_(False))
            .limit(1)
        )

        result = await self.session.execute(query)
        row = result.first()
        if not row:
            return None

        return {
            'lesson': row.Lesson,
            'course_id': row.course_id,
            'instructor_id': row.instructor_id,
        }

    async def get_lessons_by_course_id(self, course_id: int) -> Sequence[Lesson]:
        """
        Get all visible lessons of a course, ordered by section then lesson
        display order.
        """
        query = (
            select(Lesson)
            .join(Section, Lesson.section_id == Section.id)
            .where(Section.course_id == course_id)
            .where(Lesson.is_deleted.is_(False))
            .where(Section.is_deleted.is_(False))
            .order_by(Section.display_order, Lesson.display_order, Lesson.id)
        )

        result = await self.session.execute(query)
        return result.scalars().all()
