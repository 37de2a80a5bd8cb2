"""
Notification Repository - Durable notification state
"""
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.model.notification_models import Notification
from lms_service.repositories.base_repo import BaseRepository


class NotificationRepository(BaseRepository[Notification]):

    def __init__(self, session: AsyncSession):
        super().__init__(Notification, session)

    async def get_user_notifications(
        self,
        user_id: int,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50
    ) -> Sequence[Notification]:
        query = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_deleted.is_(False))
        )
        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        query = query.order_by(
            Notification.created_date.desc(), Notification.id.desc()
        ).offset(skip).limit(limit)

        return await self.execute_query(query)

    async def count_unread(self, user_id: int) -> int:
        query = (
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
            .where(Notification.is_deleted.is_(False))
        )

        result = await self.session.execute(query)
        return result.scalar() or 0

    async def get_user_notification(
        self, notification_id: int, user_id: int
    ) -> Optional[Notification]:
        query = (
            select(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.user_id == user_id)
            .where(Notification.is_deleted.is_(False))
        )

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def mark_all_read(self, user_id: int, read_at: datetime) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
            .where(Notification.is_deleted.is_(False))
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount
