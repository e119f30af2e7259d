"""API routes for communication control (topic freezes and cooldowns)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..core import ClockDep, CurrentUserDep, SessionDep
from ..models import TopicStatus
from ..schemas import (
    DiscussionResponse,
    ErrorResponse,
    MessageResponse,
    TopicCreate,
    TopicResponse,
    TopicStatusUpdate,
)
from ..services import TopicGovernor

router = APIRouter(prefix="/communication-control", tags=["communication-control"])


def get_governor(session: SessionDep, clock: ClockDep) -> TopicGovernor:
    return TopicGovernor(session, clock)


GovernorDep = Annotated[TopicGovernor, Depends(get_governor)]


@router.get("", response_model=list[TopicResponse])
async def list_topics(
    current_user: CurrentUserDep,
    governor: GovernorDep,
    status: TopicStatus | None = Query(None, description="Filter on effective status"),
):
    """Your topics and global topics; expired freezes read as active."""
    views = await governor.list_topics(current_user.id, status=status)
    return [TopicResponse.from_view(v) for v in views]


@router.post(
    "",
    response_model=TopicResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def add_topic(
    data: TopicCreate,
    current_user: CurrentUserDep,
    governor: GovernorDep,
):
    control = await governor.add_topic(data.topic, owner_id=current_user.id)
    return TopicResponse.from_control(control)


@router.get(
    "/{topic_id}",
    response_model=TopicResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_topic(
    topic_id: UUID,
    current_user: CurrentUserDep,
    governor: GovernorDep,
):
    view = await governor.get_topic(topic_id, current_user.id)
    return TopicResponse.from_view(view)


@router.post(
    "/{topic_id}/discuss",
    response_model=DiscussionResponse,
    responses={
        404: {"model": ErrorResponse},
        423: {"model": ErrorResponse, "description": "Topic is frozen or in cooldown"},
    },
)
async def discuss_topic(
    topic_id: UUID,
    current_user: CurrentUserDep,
    governor: GovernorDep,
):
    """Record one discussion; the third freezes the topic for 24 hours."""
    result = await governor.record_discussion(topic_id, current_user.id)
    return DiscussionResponse.from_result(result)


@router.put(
    "/{topic_id}",
    response_model=TopicResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_topic_status(
    topic_id: UUID,
    data: TopicStatusUpdate,
    current_user: CurrentUserDep,
    governor: GovernorDep,
):
    control = await governor.set_status(
        topic_id,
        current_user.id,
        TopicStatus(data.status),
        freeze_hours=data.freeze_hours,
    )
    return TopicResponse.from_control(control)


@router.delete(
    "/{topic_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def remove_topic(
    topic_id: UUID,
    current_user: CurrentUserDep,
    governor: GovernorDep,
):
    await governor.remove_topic(topic_id, current_user.id)
    return MessageResponse(message="Communication control removed successfully")
