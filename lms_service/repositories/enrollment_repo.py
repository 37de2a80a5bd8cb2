"""
Enrollment Repository - Data access layer for enrollments and their type lookups
"""
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.course_models import Course, Enrollment, Lookup
from lms_service.model.enums import LookupType
from lms_service.repositories.base_repo import BaseRepository


class EnrollmentRepository(BaseRepository[Enrollment]):
    """
    Repository for Enrollment entity
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Enrollment, session)

    async def find_enrollment(self, user_id: int, course_id: int) -> Optional[dict]:
        """
        Get the user's non-deleted enrollment in a course with its type name.

        Expiry is not filtered here; callers evaluate it at request time.
        When several rows exist, the most recent one wins.

        Returns:
            {"enrollment": Enrollment, "enrollment_type_name": str | None} or None
        """
        query = (
            select(Enrollment, Lookup.name_en.label('enrollment_type_name'))
            .outerjoin(Lookup, Enrollment.enrollment_type_id == Lookup.id)
            .where(Enrollment.user_id == user_id)
            .where(Enrollment.course_id == course_id)
            .where(Enrollment.is_deleted.is_(False))
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            .limit(1)
        )

        result = await self.session.execute(query)
        row = result.first()
        if not row:
            return None

        return {
            'enrollment': row.Enrollment,
            'enrollment_type_name': row.enrollment_type_name,
        }

    async def get_user_enrollments(self, user_id: int) -> Sequence[dict]:
        """
        Get all non-deleted enrollments of a user with course title and type name.
        """
        query = (
            select(
                Enrollment,
                Course.title.label('course_title'),
                Lookup.name_en.label('enrollment_type_name'),
            )
            .join(Course, Enrollment.course_id == Course.id)
            .outerjoin(Lookup, Enrollment.enrollment_type_id == Lookup.id)
            .where(Enrollment.user_id == user_id)
            .where(Enrollment.is_deleted.is_(False))
            .order_by(Enrollment.enrolled_at.desc())
        )

        result = await self.session.execute(query)
        return [
            {
                'enrollment': row.Enrollment,
                'course_title': row.course_title,
                'enrollment_type_name': row.enrollment_type_name,
            }
            for row in result.all()
        ]

    async def get_enrollment_type(self, code: str) -> Optional[Lookup]:
        query = (
            select(Lookup)
            .where(Lookup.lookup_type == LookupType.ENROLLMENT_TYPE.value)
            .where(Lookup.code == code)
            .where(Lookup.is_deleted.is_(False))
        )

        result = await self.session.execute(query)
        return result.scalars().first()
