"""
Notification Controller - REST endpoints for stored notifications and the
realtime socket.

Socket protocol (JSON text frames):
    client -> {"event": "subscribe", "data": {"user_id": 1, "roles": []}}
    server -> {"event": "subscribe", "data": {"success": true}}
    server -> {"event": "notification", "data": {...}}
"""

import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from lms_service.dependencies.services import get_notification_gateway, get_notification_service
from lms_service.schemas.generic import ApiResponse
from lms_service.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from lms_service.services.auth_service import AuthService, CurrentUser
from lms_service.services.notification_service import NotificationGateway, NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=ApiResponse[NotificationListResponse],
    summary="List My Notifications",
)
async def get_notifications(
        unread_only: bool = Query(False),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=100),
        notification_service: NotificationService = Depends(get_notification_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[NotificationListResponse]:
    result = await notification_service.get_notifications(
        user.user_id, unread_only=unread_only, skip=skip, limit=limit
    )
    return ApiResponse[NotificationListResponse].success(data=result)


@router.get(
    "/unread-count",
    response_model=ApiResponse[UnreadCountResponse],
    summary="Count Unread Notifications",
)
async def get_unread_count(
        notification_service: NotificationService = Depends(get_notification_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[UnreadCountResponse]:
    result = await notification_service.get_unread_count(user.user_id)
    return ApiResponse[UnreadCountResponse].success(data=result)


@router.patch(
    "/read-all",
    response_model=ApiResponse[MarkAllReadResponse],
    summary="Mark All Notifications Read",
)
async def mark_all_read(
        notification_service: NotificationService = Depends(get_notification_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[MarkAllReadResponse]:
    result = await notification_service.mark_all_read(user.user_id)
    return ApiResponse[MarkAllReadResponse].success(data=result)


@router.patch(
    "/{notification_id}/read",
    response_model=ApiResponse[NotificationResponse],
    summary="Mark Notification Read",
)
async def mark_read(
        notification_id: int,
        notification_service: NotificationService = Depends(get_notification_service),
        user: CurrentUser = Depends(AuthService.get_current_user),
) -> ApiResponse[NotificationResponse]:
    result = await notification_service.mark_read(notification_id, user.user_id)
    return ApiResponse[NotificationResponse].success(data=result)


@router.websocket("/ws")
async def notifications_socket(
        websocket: WebSocket,
        gateway: NotificationGateway = Depends(get_notification_gateway),
        notification_service: NotificationService = Depends(get_notification_service),
):
    await gateway.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
                continue
            if not isinstance(frame, dict):
                await websocket.send_json({"event": "error", "data": {"message": "Frame must be an object"}})
                continue

            ack = await notification_service.handle_frame(websocket, frame)
            await websocket.send_json(ack)
    except WebSocketDisconnect:
        pass
    finally:
        gateway.disconnect(websocket)
