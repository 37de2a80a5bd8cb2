"""
Assignment models: assignments and student submissions
"""

from sqlalchemy import Column, String, Text, Float, Integer, DateTime, ForeignKey, func

from lms_service.model.base import Base, BaseMixin, SoftDeleteMixin


class Assignment(Base, BaseMixin, SoftDeleteMixin):
    __tablename__ = "assignments"

    section_id = Column(
        Integer, ForeignKey("course_sections.id"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    max_points = Column(Integer, default=100, nullable=False)
    due_date = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Assignment(id={self.id}, title={self.title})>"


class AssignmentSubmission(Base, BaseMixin, SoftDeleteMixin):
    """
    A student's submission. graded_at stays null until an instructor grades it.
    """

    __tablename__ = "assignment_submissions"

    assignment_id = Column(
        Integer, ForeignKey("assignments.id"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    submission_text = Column(Text, nullable=True)
    file_url = Column(String(500), nullable=True)

    score = Column(Float, nullable=True)
    max_points = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=func.now(), nullable=False)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    def __repr__(self):
        return f"<AssignmentSubmission(id={self.id}, assignment_id={self.assignment_id})>"
