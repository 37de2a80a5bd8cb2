"""
Course-related models: courses, sections, lessons, lookups and enrollments
"""

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    func,
)
from sqlalchemy.orm import relationship

from lms_service.model.base import Base, BaseMixin, SoftDeleteMixin


class Course(Base, BaseMixin, SoftDeleteMixin):
    """
    Course owned by a single instructor
    """

    __tablename__ = "courses"

    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    instructor_id = Column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )

    # Relationships
    sections = relationship(
        "Section",
        back_populates="course",
        order_by="Section.display_order",
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class Section(Base, BaseMixin, SoftDeleteMixin):
    __tablename__ = "course_sections"

    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    display_order = Column(Integer, default=0)

    # Relationships
    course = relationship("Course", back_populates="sections")
    lessons = relationship(
        "Lesson",
        back_populates="section",
        order_by="Lesson.display_order",
    )

    def __repr__(self):
        return f"<Section(id={self.id}, title={self.title})>"


class Lesson(Base, BaseMixin, SoftDeleteMixin):
    __tablename__ = "lessons"

    section_id = Column(
        Integer,
        ForeignKey("course_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    video_url = Column(String(500), nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    display_order = Column(Integer, default=0)
    is_preview = Column(Boolean, default=False, nullable=False)

    # Relationships
    section = relationship("Section", back_populates="lessons")

    def __repr__(self):
        return f"<Lesson(id={self.id}, title={self.title}, preview={self.is_preview})>"


class Lookup(Base, BaseMixin, SoftDeleteMixin):
    """
    Generic lookup value (enrollment types and similar code tables)
    """

    __tablename__ = "lookups"

    lookup_type = Column(String(50), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name_en = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<Lookup(type={self.lookup_type}, code={self.code})>"


class Enrollment(Base, BaseMixin, SoftDeleteMixin):
    """
    Grants a user timed (expires_at set) or permanent (expires_at null)
    access to a course.
    """

    __tablename__ = "enrollments"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id"), nullable=False, index=True
    )
    enrollment_type_id = Column(Integer, ForeignKey("lookups.id"), nullable=True)
    enrolled_at = Column(DateTime, default=func.now(), nullable=False)
    expires_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return (
            f"<Enrollment(id={self.id}, user_id={self.user_id}, "
            f"course_id={self.course_id})>"
        )
