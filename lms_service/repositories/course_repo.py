"""
Course Repository - Data access layer for courses
"""

from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.course_models import Course
from lms_service.repositories.base_repo import BaseRepository


class CourseRepository(BaseRepository[Course]):
    """
    Repository for Course entity. Lookups go through BaseRepository.get_by_id,
    which already hides soft-deleted courses.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Course, session)
