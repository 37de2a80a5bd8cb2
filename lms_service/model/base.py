from sqlalchemy import Column, DateTime, Integer, Boolean, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class TimestampMixin:
    created_date = Column(DateTime, default=func.now(), nullable=False)
    updated_date = Column(
        DateTime, default=func.now(), onupdate=func.now(), nullable=False
    )


class SoftDeleteMixin:
    """Rows are hidden, never removed. Repositories filter on is_deleted."""

    is_deleted = Column(Boolean, default=False, nullable=False)

    def mark_deleted(self):
        self.is_deleted = True


class BaseMixin(TimestampMixin):
    """Integer primary key plus timestamps. Subclasses name their own table."""

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"
