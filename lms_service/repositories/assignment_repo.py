"""
Assignment Repository - Data access layer for assignment submissions
"""
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.assignment_models import Assignment, AssignmentSubmission
from lms_service.model.course_models import Course, Section
from lms_service.model.user_models import User
from lms_service.repositories.base_repo import BaseRepository


class AssignmentSubmissionRepository(BaseRepository[AssignmentSubmission]):
    """
    Repository for AssignmentSubmission with the course ownership chain
    (submission -> assignment -> section -> course -> instructor).
    """

    def __init__(self, session: AsyncSession):
        super().__init__(AssignmentSubmission, session)

    def _submission_context_query(self):
        return (
            select(
                AssignmentSubmission,
                Assignment.title.label('assignment_title'),
                Assignment.description.label('assignment_description'),
                Assignment.instructions.label('assignment_instructions'),
                Assignment.max_points.label('assignment_max_points'),
                Course.id.label('course_id'),
                Course.title.label('course_name'),
                Course.instructor_id.label('instructor_id'),
                User.username.label('user_name'),
                User.email.label('user_email'),
            )
            .join(Assignment, AssignmentSubmission.assignment_id == Assignment.id)
            .join(Section, Assignment.section_id == Section.id)
            .join(Course, Section.course_id == Course.id)
            .join(User, AssignmentSubmission.user_id == User.id)
            .where(AssignmentSubmission.is_deleted.is_(False))
        )

    @staticmethod
    def _row_to_dict(row) -> dict:
        return {
            'submission': row.AssignmentSubmission,
            'assignment_title': row.assignment_title,
            'assignment_description': row.assignment_description,
            'assignment_instructions': row.assignment_instructions,
            'assignment_max_points': row.assignment_max_points,
            'course_id': row.course_id,
            'course_name': row.course_name,
            'instructor_id': row.instructor_id,
            'user_name': row.user_name,
            'user_email': row.user_email,
        }

    async def get_submission_with_context(self, submission_id: int) -> Optional[dict]:
        query = self._submission_context_query().where(
            AssignmentSubmission.id == submission_id
        ).limit(1)

        result = await self.session.execute(query)
        row = result.first()
        return self._row_to_dict(row) if row else None

    async def get_pending_submissions(
        self,
        instructor_id: int,
        course_id: Optional[int] = None,
        limit: int = 100
    ) -> Sequence[dict]:
        """
        Ungraded submissions across the instructor's courses, newest first.

        SQL equivalent:
            ... WHERE graded_at IS NULL AND c.instructor_id = :instructor_id
                [AND c.id = :course_id]
            ORDER BY submitted_at DESC LIMIT :limit
        """
        query = (
            self._submission_context_query()
            .where(AssignmentSubmission.graded_at.is_(None))
            .where(Course.instructor_id == instructor_id)
        )

        if course_id is not None:
            query = query.where(Course.id == course_id)

        query = query.order_by(
            AssignmentSubmission.submitted_at.desc(), AssignmentSubmission.id.desc()
        ).limit(limit)

        result = await self.session.execute(query)
        return [self._row_to_dict(row) for row in result.all()]
