"""Notification Sink.

Persists side-effect notices for later polling. Emission runs inside a
savepoint: if the insert fails, only the notice is lost and the governance
transition it was attached to still commits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..models import Notification, NotificationType, User
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)

NOTIFICATION_PAGE_SIZE = 50


@dataclass
class NotificationPage:
    """Recent notifications for one recipient."""
    notifications: list[Notification]
    unread_count: int


class NotificationSink:
    """Write-mostly store for partner notices."""

    def __init__(self, session: AsyncSession, clock: Clock = system_clock):
        self._session = session
        self._clock = clock

    async def emit(
        self,
        recipient_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        """Record a notification. Returns None if the sink failed."""
        notification = Notification(
            user_id=recipient_id,
            title=title,
            message=message,
            type=type,
            data=data,
            is_read=False,
            created_at=self._clock.now(),
        )
        try:
            async with self._session.begin_nested():
                self._session.add(notification)
        except SQLAlchemyError as e:
            logger.warning(
                f"Notification '{title}' for {recipient_id} dropped: {e}",
                exc_info=True,
            )
            return None

        logger.debug(f"Notification {notification.id} ({type.value}) queued for {recipient_id}")
        return notification

    async def emit_to_partner(
        self,
        user: User,
        title: str,
        message: str,
        type: NotificationType,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        """Notify the user's linked partner; no partner means nothing to do."""
        if user.partner_id is None:
            logger.debug(f"User {user.id} has no partner, skipping '{title}'")
            return None
        return await self.emit(user.partner_id, title, message, type, data)

    async def create(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """A notice a user writes for themselves. Failures propagate."""
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            data=data,
            is_read=False,
            created_at=self._clock.now(),
        )
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def list_for(
        self,
        user_id: UUID,
        unread_only: bool = False,
        type: NotificationType | None = None,
    ) -> NotificationPage:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        if type is not None:
            query = query.where(Notification.type == type)
        query = query.order_by(Notification.created_at.desc()).limit(NOTIFICATION_PAGE_SIZE)

        result = await self._session.execute(query)
        notifications = list(result.scalars().all())

        count_result = await self._session.execute(
            select(func.count()).select_from(Notification).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )

        return NotificationPage(
            notifications=notifications,
            unread_count=count_result.scalar_one(),
        )

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self._get_owned_or_raise(notification_id, user_id)
        notification.is_read = True
        await self._session.flush()
        return notification

    async def delete(self, notification_id: UUID, user_id: UUID) -> None:
        notification = await self._get_owned_or_raise(notification_id, user_id)
        await self._session.delete(notification)
        await self._session.flush()

    async def _get_owned_or_raise(self, notification_id: UUID, user_id: UUID) -> Notification:
        result = await self._session.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification


def describe_instant(instant: datetime) -> str:
    """Human-readable UTC timestamp for notification bodies."""
    return instant.strftime("%Y-%m-%d %H:%M UTC")
