"""API routes for polling partner notifications."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..core import ClockDep, CurrentUserDep, SessionDep
from ..models import NotificationType
from ..schemas import (
    ErrorResponse,
    MessageResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from ..services import NotificationSink

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_sink(session: SessionDep, clock: ClockDep) -> NotificationSink:
    return NotificationSink(session, clock)


SinkDep = Annotated[NotificationSink, Depends(get_sink)]


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: CurrentUserDep,
    sink: SinkDep,
    unread_only: bool = Query(False),
    type: NotificationType | None = Query(None),
):
    page = await sink.list_for(current_user.id, unread_only=unread_only, type=type)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in page.notifications],
        unread_count=page.unread_count,
    )


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    data: NotificationCreate,
    current_user: CurrentUserDep,
    sink: SinkDep,
):
    """Record a notice for yourself, such as a personal reminder."""
    notification = await sink.create(
        current_user.id,
        title=data.title,
        message=data.message,
        type=NotificationType(data.type),
        data=data.data,
    )
    return NotificationResponse.model_validate(notification)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def mark_notification_read(
    notification_id: UUID,
    current_user: CurrentUserDep,
    sink: SinkDep,
):
    notification = await sink.mark_read(notification_id, current_user.id)
    return NotificationResponse.model_validate(notification)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_notification(
    notification_id: UUID,
    current_user: CurrentUserDep,
    sink: SinkDep,
):
    await sink.delete(notification_id, current_user.id)
    return MessageResponse(message="Notification deleted successfully")
