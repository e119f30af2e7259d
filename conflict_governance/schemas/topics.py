"""Pydantic schemas for communication control."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from ..models import CommunicationControl, TopicStatus
from ..services import DiscussionResult, TopicView
from .base import GovernanceBaseModel


class TopicCreate(GovernanceBaseModel):
    topic: str = Field(..., min_length=1, max_length=255)


class TopicStatusUpdate(GovernanceBaseModel):
    status: TopicStatus
    freeze_hours: int | None = Field(
        default=None,
        description="Freeze length in hours; clamped to 1-168, defaults to 24",
    )


class TopicResponse(GovernanceBaseModel):
    """A topic as presented at read time."""

    id: UUID
    topic: str
    status: TopicStatus
    last_discussed: datetime
    discussion_count: int
    freeze_until: datetime | None = None
    user_id: UUID | None = None

    @classmethod
    def from_control(
        cls,
        control: CommunicationControl,
        status: TopicStatus | None = None,
    ) -> "TopicResponse":
        return cls(
            id=control.id,
            topic=control.topic,
            status=status or control.status,
            last_discussed=control.last_discussed,
            discussion_count=control.discussion_count,
            freeze_until=control.freeze_until,
            user_id=control.user_id,
        )

    @classmethod
    def from_view(cls, view: TopicView) -> "TopicResponse":
        response = cls.from_control(view.control, view.effective_status)
        # A passed window is not reported
        if view.effective_status == TopicStatus.ACTIVE:
            response.freeze_until = None
        return response


class DiscussionResponse(TopicResponse):
    auto_frozen: bool = False
    message: str | None = None

    @classmethod
    def from_result(cls, result: DiscussionResult) -> "DiscussionResponse":
        base = TopicResponse.from_control(result.control)
        return cls(
            **base.model_dump(),
            auto_frozen=result.auto_frozen,
            message=result.message,
        )
