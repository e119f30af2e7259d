"""
Override Gate: rate-limited, time-boxed emergency bypasses.

An override targets exactly one locked decision or task, lasts between one
and twenty-four hours, and tells the requester's partner that it happened.
Overrides are never revoked; they end when ``expires_at`` passes.

The abuse guard counts overrides by creation time over a trailing window,
so expired overrides still count against the requester.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.config import get_settings
from ..models import EmergencyOverride, NotificationType, OverrideStatus, Task
from .authority_ledger import AuthorityLedger
from .exceptions import NotFoundError, RateLimitError, ValidationError
from .notifications import NotificationSink
from .partners import get_user_or_raise
from .windows import is_override_live

logger = logging.getLogger(__name__)


# =============================================================================
# POLICY
# =============================================================================


@dataclass(frozen=True)
class OverridePolicy:
    """Fixed abuse-prevention policy for emergency overrides."""

    # Overrides a user may create per trailing window
    max_per_window: int = 5
    window_hours: int = 24

    # Allowed override lengths
    min_duration_hours: int = 1
    max_duration_hours: int = 24

    # Size of the history returned by list_overrides
    history_limit: int = 20


DEFAULT_POLICY = OverridePolicy()


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class ActivateOverrideInput:
    """Input for activating an emergency override."""
    reason: str
    decision_id: UUID | None = None
    task_id: UUID | None = None
    duration_hours: int = field(
        default_factory=lambda: get_settings().default_override_hours
    )


@dataclass
class OverrideListing:
    """Recent overrides, with the subset that is live right now."""
    all: list[EmergencyOverride]
    active_now: list[EmergencyOverride]


# =============================================================================
# OVERRIDE GATE
# =============================================================================


class OverrideGate:
    """Grants emergency overrides after validation and rate limiting."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = system_clock,
        notifications: NotificationSink | None = None,
        policy: OverridePolicy = DEFAULT_POLICY,
    ):
        self._session = session
        self._clock = clock
        self._notifications = notifications or NotificationSink(session, clock)
        self._ledger = AuthorityLedger(session, clock, self._notifications)
        self._policy = policy

    async def activate_override(
        self,
        input: ActivateOverrideInput,
        requester_id: UUID,
    ) -> EmergencyOverride:
        """
        Activate an override.

        Flow:
        1. Exactly one target, non-blank reason, duration in bounds
        2. Lock the requester row, then count overrides in the trailing window
        3. Verify the target exists and is accessible to the requester
        4. INSERT the override and notify the partner
        """
        self._validate(input)

        # Serializes racing activations by the same requester
        requester = await get_user_or_raise(self._session, requester_id, for_update=True)

        now = self._clock.now()
        window_start = now - timedelta(hours=self._policy.window_hours)
        recent = await self._session.scalar(
            select(func.count()).select_from(EmergencyOverride).where(
                EmergencyOverride.user_id == requester_id,
                EmergencyOverride.created_at >= window_start,
            )
        )
        if recent >= self._policy.max_per_window:
            logger.warning(
                f"User {requester_id} hit the override limit "
                f"({recent} in the last {self._policy.window_hours}h)"
            )
            raise RateLimitError(
                f"Too many emergency overrides in the last {self._policy.window_hours} hours"
            )

        if input.decision_id is not None:
            decision = await self._ledger.find_accessible(input.decision_id, requester_id)
            if decision is None:
                raise NotFoundError("Decision not found")

        if input.task_id is not None:
            task = await self._session.scalar(
                select(Task.id).where(
                    Task.id == input.task_id,
                    or_(Task.created_by == requester_id, Task.assigned_to == requester_id),
                )
            )
            if task is None:
                raise NotFoundError("Task not found")

        override = EmergencyOverride(
            reason=input.reason.strip(),
            user_id=requester_id,
            decision_id=input.decision_id,
            task_id=input.task_id,
            status=OverrideStatus.ACTIVE,
            created_at=now,
            expires_at=now + timedelta(hours=input.duration_hours),
        )
        self._session.add(override)
        await self._session.flush()

        logger.info(
            f"Emergency override {override.id} activated by {requester_id} "
            f"until {override.expires_at.isoformat()}"
        )

        await self._notifications.emit_to_partner(
            requester,
            title="Emergency Override Activated",
            message=(
                f"{requester.name or 'Your partner'} has activated an emergency "
                f"override: {override.reason}"
            ),
            type=NotificationType.EMERGENCY,
            data={
                "override_id": str(override.id),
                "reason": override.reason,
                "activated_by": requester.name,
            },
        )

        return override

    async def list_overrides(self, requester_id: UUID) -> OverrideListing:
        """The requester's most recent overrides, split by liveness."""
        result = await self._session.execute(
            select(EmergencyOverride)
            .where(EmergencyOverride.user_id == requester_id)
            .order_by(EmergencyOverride.created_at.desc())
            .limit(self._policy.history_limit)
        )
        overrides = list(result.scalars().all())
        now = self._clock.now()

        return OverrideListing(
            all=overrides,
            active_now=[o for o in overrides if is_override_live(o, now)],
        )

    def _validate(self, input: ActivateOverrideInput) -> None:
        if input.decision_id is None and input.task_id is None:
            raise ValidationError(
                "Either decision_id or task_id must be provided", field="decision_id"
            )
        if input.decision_id is not None and input.task_id is not None:
            raise ValidationError(
                "Provide only one of decision_id or task_id", field="task_id"
            )
        if not input.reason or not input.reason.strip():
            raise ValidationError("A reason is required", field="reason")
        if not (
            self._policy.min_duration_hours
            <= input.duration_hours
            <= self._policy.max_duration_hours
        ):
            raise ValidationError(
                f"duration_hours must be between {self._policy.min_duration_hours} "
                f"and {self._policy.max_duration_hours}",
                field="duration_hours",
            )
