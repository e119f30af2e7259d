"""Pydantic schemas for emergency overrides."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from ..core.config import get_settings
from ..models import EmergencyOverride, OverrideStatus
from ..services import ActivateOverrideInput, OverrideListing
from ..services.windows import effective_override_status
from .base import GovernanceBaseModel


class OverrideCreate(GovernanceBaseModel):
    """Request to activate an emergency override.

    Exactly one of ``decision_id`` and ``task_id`` must be given; the service
    rejects anything else.
    """

    reason: str = Field(..., min_length=1)
    decision_id: UUID | None = None
    task_id: UUID | None = None
    duration_hours: int = Field(
        default_factory=lambda: get_settings().default_override_hours,
        ge=1,
        le=24,
    )

    def to_input(self) -> ActivateOverrideInput:
        return ActivateOverrideInput(
            reason=self.reason,
            decision_id=self.decision_id,
            task_id=self.task_id,
            duration_hours=self.duration_hours,
        )


class OverrideResponse(GovernanceBaseModel):
    id: UUID
    reason: str
    user_id: UUID
    decision_id: UUID | None = None
    task_id: UUID | None = None
    status: OverrideStatus
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_model(cls, override: EmergencyOverride, now: datetime) -> "OverrideResponse":
        return cls(
            id=override.id,
            reason=override.reason,
            user_id=override.user_id,
            decision_id=override.decision_id,
            task_id=override.task_id,
            status=effective_override_status(override, now),
            created_at=override.created_at,
            expires_at=override.expires_at,
        )


class OverrideListResponse(GovernanceBaseModel):
    overrides: list[OverrideResponse]
    active_overrides: list[OverrideResponse]

    @classmethod
    def from_listing(cls, listing: OverrideListing, now: datetime) -> "OverrideListResponse":
        return cls(
            overrides=[OverrideResponse.from_model(o, now) for o in listing.all],
            active_overrides=[OverrideResponse.from_model(o, now) for o in listing.active_now],
        )
