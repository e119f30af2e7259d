"""Pydantic schemas for polled notifications."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from ..models import NotificationType
from .base import GovernanceBaseModel


class NotificationCreate(GovernanceBaseModel):
    """A notice the caller records for themselves."""

    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType
    data: dict[str, Any] | None = None


class NotificationResponse(GovernanceBaseModel):
    id: UUID
    title: str
    message: str
    type: NotificationType
    data: dict[str, Any] | None = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(GovernanceBaseModel):
    notifications: list[NotificationResponse]
    unread_count: int
