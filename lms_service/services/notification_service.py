"""
Notification Service - durable notifications plus a realtime relay.

Architecture:
    - NotificationRepository: persisted notification rows (read state lives here)
    - NotificationGateway: process-wide socket rooms, best-effort push
    - NotificationService: persists a notification, then pushes it
"""

import logging
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from lms_service.model.enums import AdminNotificationEvent, NotificationType
from lms_service.model.notification_models import Notification
from lms_service.repositories.notification_repo import NotificationRepository
from lms_service.schemas.notification import (
    AdminNotificationPayload,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    SubscribePayload,
    UnreadCountResponse,
)
from lms_service.utils.exceptions import ResourceNotFoundException
from lms_service.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ADMIN_CLIENT_ROLES = {"admin", "superadmin", "super_admin", "moderator"}


def user_room(user_id: int) -> str:
    return f"user-{user_id}"


def admin_role_room(role: str) -> str:
    return f"admin:role:{role.lower()}"


def admin_user_room(user_id: int) -> str:
    return f"admin:user:{user_id}"


ADMIN_GENERAL_ROOM = "admin:general"


# =============================
#   Gateway
# =============================
class NotificationGateway:
    """
    In-memory room registry for notification sockets.

    Delivery is at-most-once: a socket whose send fails is dropped and the
    message is not retried. Durable state is the notifications table.
    """

    def __init__(self):
        # room -> socket ids; sockets are tracked by id()
        self._rooms: Dict[str, Set[int]] = {}
        self._sockets: Dict[int, WebSocket] = {}
        self._clients: Dict[int, Dict[str, Any]] = {}

    # ---------- connection lifecycle ----------
    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self._sockets[id(websocket)] = websocket
        logger.info(f"Notification client connected: {id(websocket)}")

    def disconnect(self, websocket: WebSocket):
        key = id(websocket)
        for members in self._rooms.values():
            members.discard(key)
        self._rooms = {room: members for room, members in self._rooms.items() if members}
        self._sockets.pop(key, None)
        self._clients.pop(key, None)
        logger.info(f"Notification client disconnected: {key}")

    def join(self, websocket: WebSocket, room: str):
        self._sockets.setdefault(id(websocket), websocket)
        self._rooms.setdefault(room, set()).add(id(websocket))

    def leave(self, websocket: WebSocket, room: str):
        members = self._rooms.get(room)
        if members:
            members.discard(id(websocket))
            if not members:
                del self._rooms[room]

    def subscriber_of(self, websocket: WebSocket) -> Optional[int]:
        client = self._clients.get(id(websocket))
        return client["user_id"] if client else None

    # ---------- client events ----------
    def subscribe(self, websocket: WebSocket, data: Any):
        payload = SubscribePayload.model_validate(data)
        self.join(websocket, user_room(payload.user_id))
        self._clients[id(websocket)] = {"user_id": payload.user_id, "roles": payload.roles}
        logger.info(f"User {payload.user_id} subscribed to notifications")

    def subscribe_admin(self, websocket: WebSocket, data: Any):
        payload = SubscribePayload.model_validate(data)
        self.join(websocket, ADMIN_GENERAL_ROOM)
        for role in payload.roles:
            self.join(websocket, admin_role_room(role))
        self.join(websocket, admin_user_room(payload.user_id))
        self._clients[id(websocket)] = {"user_id": payload.user_id, "roles": payload.roles}
        logger.info(
            f"Admin user {payload.user_id} subscribed with roles: {', '.join(payload.roles)}"
        )

    def unsubscribe(self, websocket: WebSocket, user_id: int):
        self.leave(websocket, user_room(int(user_id)))
        logger.info(f"User {user_id} unsubscribed from notifications")

    # ---------- server pushes ----------
    async def emit(self, room: str, event: str, data: Any) -> int:
        """
        Send a frame to every socket in a room.

        Returns:
            Number of sockets the frame was delivered to
        """
        members = [self._sockets[key] for key in self._rooms.get(room, ()) if key in self._sockets]
        frame = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        for websocket in members:
            try:
                await websocket.send_json(frame)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping notification socket after failed send: {e}")
                self.disconnect(websocket)
        return delivered

    async def send_notification(self, user_id: int, notification: Any) -> int:
        return await self.emit(user_room(user_id), "notification", notification)

    async def send_to_multiple(self, user_ids: List[int], notification: Any):
        for user_id in user_ids:
            await self.send_notification(user_id, notification)

    async def notify_admins(self, notification: AdminNotificationPayload) -> int:
        logger.info(f"Broadcasting to all admins: {notification.type.value}")
        stamped = notification.model_copy(update={"timestamp": utcnow()})
        return await self.emit(ADMIN_GENERAL_ROOM, "admin:notification", stamped)

    async def notify_roles(self, roles: List[str], notification: AdminNotificationPayload):
        for role in roles:
            logger.info(f"Broadcasting to role {role}: {notification.type.value}")
            stamped = notification.model_copy(update={"timestamp": utcnow()})
            await self.emit(admin_role_room(role), "admin:notification", stamped)

    async def notify_admin_user(self, user_id: int, notification: AdminNotificationPayload) -> int:
        logger.info(f"Sending to admin user {user_id}: {notification.type.value}")
        stamped = notification.model_copy(update={"timestamp": utcnow()})
        return await self.emit(admin_user_room(user_id), "admin:notification", stamped)

    async def broadcast_stats_update(self, stats: Dict[str, Any]) -> int:
        return await self.emit(ADMIN_GENERAL_ROOM, AdminNotificationEvent.STATS_UPDATED.value, stats)

    # ---------- counters ----------
    def get_connected_clients_count(self) -> int:
        return len(self._clients)

    def get_admin_clients_count(self) -> int:
        return sum(
            1 for client in self._clients.values()
            if any(role.lower() in ADMIN_CLIENT_ROLES for role in client["roles"])
        )


notification_gateway = NotificationGateway()


# =============================
#   Notification Service
# =============================
def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        user_id=notification.user_id,
        notification_type=notification.notification_type,
        title=notification.title,
        message=notification.message,
        data=notification.data,
        action_url=notification.action_url,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_date=notification.created_date,
    )


class NotificationService:
    """
    Service for user notifications.

    Example:
        await notification_service.notify_user(
            user_id=student_id,
            notification_type=NotificationType.SUBMISSION_GRADED,
            title="Assignment graded",
            message="Your submission received 8/10",
        )
    """

    def __init__(
            self,
            notification_repository: NotificationRepository,
            gateway: NotificationGateway,
    ):
        self._notification_repository = notification_repository
        self._gateway = gateway

    async def notify_user(
            self,
            user_id: int,
            notification_type: NotificationType,
            title: str,
            message: str,
            data: Optional[Dict[str, Any]] = None,
            action_url: Optional[str] = None,
    ) -> NotificationResponse:
        """Persist a notification for the user, then push it to their room."""
        notification = await self._notification_repository.create({
            "user_id": user_id,
            "notification_type": notification_type.value,
            "title": title,
            "message": message,
            "data": data,
            "action_url": action_url,
        })
        response = _to_response(notification)

        delivered = await self._gateway.send_notification(user_id, response)
        logger.debug(
            f"Notification {notification.id} ({notification_type.value}) for user {user_id} "
            f"pushed to {delivered} socket(s)"
        )
        return response

    async def get_notifications(
            self,
            user_id: int,
            unread_only: bool = False,
            skip: int = 0,
            limit: int = 50
    ) -> NotificationListResponse:
        rows = await self._notification_repository.get_user_notifications(
            user_id, unread_only=unread_only, skip=skip, limit=limit
        )
        unread = await self._notification_repository.count_unread(user_id)
        return NotificationListResponse(
            items=[_to_response(n) for n in rows],
            unread_count=unread,
        )

    async def get_unread_count(self, user_id: int) -> UnreadCountResponse:
        unread = await self._notification_repository.count_unread(user_id)
        return UnreadCountResponse(unread_count=unread)

    async def mark_read(self, notification_id: int, user_id: int) -> NotificationResponse:
        notification = await self._notification_repository.get_user_notification(
            notification_id, user_id
        )
        if not notification:
            raise ResourceNotFoundException(f"Notification {notification_id} not found")

        if not notification.is_read:
            notification = await self._notification_repository.update(
                notification, {"is_read": True, "read_at": utcnow()}
            )
        return _to_response(notification)

    async def mark_all_read(self, user_id: int) -> MarkAllReadResponse:
        updated = await self._notification_repository.mark_all_read(user_id, utcnow())
        logger.info(f"Marked {updated} notification(s) read for user {user_id}")
        return MarkAllReadResponse(updated=updated)

    # ---------- socket frames ----------
    async def handle_frame(self, websocket: WebSocket, frame: Dict[str, Any]) -> Dict[str, Any]:
        """
        Dispatch one client frame and build the acknowledgement frame.
        """
        event = frame.get("event")
        data = frame.get("data")

        try:
            if event == "subscribe":
                self._gateway.subscribe(websocket, data)
            elif event == "subscribe:admin":
                self._gateway.subscribe_admin(websocket, data)
            elif event == "unsubscribe":
                self._gateway.unsubscribe(websocket, data)
            elif event == "notification:read":
                user_id = self._gateway.subscriber_of(websocket)
                if user_id is None:
                    return {"event": "error", "data": {"message": "Subscribe before marking notifications"}}
                await self.mark_read(int(data), user_id)
                logger.info(f"Notification {data} marked as read")
            else:
                return {"event": "error", "data": {"message": f"Unknown event: {event}"}}
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Invalid payload for event {event}: {e}")
            return {"event": "error", "data": {"message": f"Invalid payload for {event}"}}
        except ResourceNotFoundException as e:
            return {"event": "error", "data": {"message": e.message}}

        return {"event": event, "data": {"success": True}}
