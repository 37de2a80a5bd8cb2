from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, JSON, ForeignKey

from lms_service.model.base import Base, BaseMixin, SoftDeleteMixin
from lms_service.model.enums import NotificationType


class Notification(Base, BaseMixin, SoftDeleteMixin):
    """
    Durable notification state. Socket pushes are best effort; this table is
    what the REST endpoints read.
    """

    __tablename__ = "notifications"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(
        String(50), default=NotificationType.GENERAL.value, nullable=False
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    action_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, read={self.is_read})>"
