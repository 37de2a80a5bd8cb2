from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from lms_service.model.enums import AdminNotificationEvent


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    notification_type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    action_url: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_date: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


# =============================
#   Gateway Frames
# =============================
class GatewayFrame(BaseModel):
    """JSON frame exchanged over the notification socket"""

    event: str
    data: Any = None


class SubscribePayload(BaseModel):
    user_id: int
    roles: List[str] = Field(default_factory=list)


class AdminNotificationPayload(BaseModel):
    """Payload pushed to admin rooms"""

    id: Optional[int] = None
    type: AdminNotificationEvent
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    action_url: Optional[str] = None
    timestamp: Optional[datetime] = None
