"""
User model. Identity is owned by the auth subsystem; this table mirrors the
fields the LMS joins against (names and e-mail for grading views).
"""

from sqlalchemy import Column, String

from lms_service.model.base import Base, BaseMixin, SoftDeleteMixin
from lms_service.model.enums import UserRole


class User(Base, BaseMixin, SoftDeleteMixin):
    __tablename__ = "users"

    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), default=UserRole.STUDENT.value, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
