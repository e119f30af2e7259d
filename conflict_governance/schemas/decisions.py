"""Pydantic schemas for decisions."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from ..core.config import get_settings
from ..models import DecisionStatus
from ..services import CreateDecisionInput, DecisionView
from .base import GovernanceBaseModel


class DecisionCreate(GovernanceBaseModel):
    """Schema for creating a new decision."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    category: str = Field(..., min_length=1, max_length=100)
    owner_id: UUID
    role_id: UUID | None = None
    child_id: UUID | None = None
    discussion_hours: int = Field(
        default_factory=lambda: get_settings().default_discussion_hours,
        ge=1,
        le=168,
        description="Hours the decision stays open for discussion (max one week)",
    )

    def to_input(self) -> CreateDecisionInput:
        return CreateDecisionInput(
            title=self.title,
            description=self.description,
            category=self.category,
            owner_id=self.owner_id,
            role_id=self.role_id,
            child_id=self.child_id,
            discussion_hours=self.discussion_hours,
        )


class DecisionResponse(GovernanceBaseModel):
    """A decision with its effective status."""

    id: UUID
    title: str
    description: str | None = None
    category: str
    owner_id: UUID
    created_by: UUID
    role_id: UUID | None = None
    child_id: UUID | None = None
    status: DecisionStatus
    stored_status: DecisionStatus
    discussion_ends_at: datetime
    locked_at: datetime | None = None
    locked_by: UUID | None = None
    created_at: datetime

    @classmethod
    def from_view(cls, view: DecisionView) -> "DecisionResponse":
        d = view.decision
        return cls(
            id=d.id,
            title=d.title,
            description=d.description,
            category=d.category,
            owner_id=d.owner_id,
            created_by=d.created_by,
            role_id=d.role_id,
            child_id=d.child_id,
            status=view.effective_status,
            stored_status=d.status,
            discussion_ends_at=d.discussion_ends_at,
            locked_at=d.locked_at,
            locked_by=d.locked_by,
            created_at=d.created_at,
        )
