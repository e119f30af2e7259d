"""
Authority Ledger: decision lifecycle.

A decision is created ``active`` with a discussion window. Once the window
has elapsed its owner or creator may lock it; locking is one-way. A live
emergency override shows the decision as ``overridden`` at read time
without touching the stored status.

    active --(now >= discussion_ends_at)--> locked
    active | locked --(live override)--> overridden   [read-time only]
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.clock import Clock, system_clock
from ..core.config import get_settings
from ..models import (
    Child,
    Decision,
    DecisionStatus,
    EmergencyOverride,
    NotificationType,
    OverrideStatus,
    Role,
)
from .exceptions import (
    ConcurrencyError,
    ConflictError,
    NotFoundError,
    TooEarlyError,
    ValidationError,
)
from .notifications import NotificationSink, describe_instant
from .partners import get_user_or_raise, is_self_or_partner
from .windows import can_lock_at, effective_decision_status

logger = logging.getLogger(__name__)

MIN_DISCUSSION_HOURS = 1
MAX_DISCUSSION_HOURS = 168  # One week


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class CreateDecisionInput:
    """Input for creating a new decision."""
    title: str
    category: str
    owner_id: UUID
    discussion_hours: int = field(
        default_factory=lambda: get_settings().default_discussion_hours
    )
    description: str | None = None
    role_id: UUID | None = None
    child_id: UUID | None = None


@dataclass
class DecisionView:
    """A decision as seen at a given instant."""
    decision: Decision
    effective_status: DecisionStatus

    @property
    def is_overridden(self) -> bool:
        return self.effective_status == DecisionStatus.OVERRIDDEN


# =============================================================================
# AUTHORITY LEDGER
# =============================================================================


class AuthorityLedger:
    """
    Owns creation, locking and querying of decisions.

    Guarantees:
    1. The owner is always the creator or the creator's partner
    2. No decision is locked before its discussion window ends
    3. Locks are never undone; overrides only overlay them at read time
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = system_clock,
        notifications: NotificationSink | None = None,
    ):
        self._session = session
        self._clock = clock
        self._notifications = notifications or NotificationSink(session, clock)

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_decision(
        self,
        input: CreateDecisionInput,
        creator_id: UUID,
    ) -> DecisionView:
        """
        Create a decision and open its discussion window.

        Flow:
        1. Validate the window length
        2. Verify the owner is the creator or the creator's partner
        3. Verify role (owned by owner) and child (parented by creator)
        4. INSERT with discussion_ends_at = now + discussion_hours
        """
        if not MIN_DISCUSSION_HOURS <= input.discussion_hours <= MAX_DISCUSSION_HOURS:
            raise ValidationError(
                f"discussion_hours must be between {MIN_DISCUSSION_HOURS} "
                f"and {MAX_DISCUSSION_HOURS}",
                field="discussion_hours",
            )

        creator = await get_user_or_raise(self._session, creator_id)

        if not is_self_or_partner(creator, input.owner_id):
            raise ValidationError("Owner must be you or your partner", field="owner_id")

        if input.role_id is not None:
            role = await self._session.scalar(
                select(Role.id).where(
                    Role.id == input.role_id,
                    Role.owner_id == input.owner_id,
                )
            )
            if role is None:
                raise NotFoundError("Role not found or doesn't belong to the owner")

        if input.child_id is not None:
            child = await self._session.scalar(
                select(Child.id).where(
                    Child.id == input.child_id,
                    or_(Child.parent_id_1 == creator_id, Child.parent_id_2 == creator_id),
                )
            )
            if child is None:
                raise NotFoundError("Child not found or doesn't belong to your family")

        now = self._clock.now()
        decision = Decision(
            title=input.title,
            description=input.description,
            category=input.category,
            owner_id=input.owner_id,
            created_by=creator_id,
            role_id=input.role_id,
            child_id=input.child_id,
            status=DecisionStatus.ACTIVE,
            created_at=now,
            discussion_ends_at=now + timedelta(hours=input.discussion_hours),
        )
        self._session.add(decision)
        await self._session.flush()

        logger.info(
            f"Decision {decision.id} created by {creator_id} for owner {input.owner_id}, "
            f"discussion ends {decision.discussion_ends_at.isoformat()}"
        )
        return DecisionView(decision=decision, effective_status=decision.status)

    # =========================================================================
    # LOCK
    # =========================================================================

    async def lock_decision(
        self,
        decision_id: UUID,
        requester_id: UUID,
    ) -> DecisionView:
        """
        Lock a decision once its discussion window has elapsed.

        The UPDATE is conditioned on the version that was read, so two
        partners locking at once cannot both succeed.
        """
        decision = await self._get_accessible_or_raise(
            decision_id, requester_id, for_update=True
        )

        if decision.status == DecisionStatus.LOCKED:
            raise ConflictError("Decision is already locked")

        now = self._clock.now()
        if not can_lock_at(decision, now):
            raise TooEarlyError(
                f"Discussion is open until {describe_instant(decision.discussion_ends_at)}",
                available_at=decision.discussion_ends_at,
            )

        decision.status = DecisionStatus.LOCKED
        decision.locked_at = now
        decision.locked_by = requester_id

        try:
            await self._session.flush()
        except StaleDataError as e:
            raise ConcurrencyError(
                "The decision was modified by your partner. Reload and try again."
            ) from e

        logger.info(f"Decision {decision.id} locked by {requester_id}")

        requester = await get_user_or_raise(self._session, requester_id)
        await self._notifications.emit_to_partner(
            requester,
            title="Decision Locked",
            message=f"{requester.name or 'Your partner'} locked the decision: {decision.title}",
            type=NotificationType.DECISION_LOCK,
            data={"decision_id": str(decision.id), "locked_by": str(requester_id)},
        )

        has_override = await self._has_live_override(decision.id, now)
        return DecisionView(
            decision=decision,
            effective_status=effective_decision_status(decision, has_override),
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_decision(self, decision_id: UUID, requester_id: UUID) -> DecisionView:
        decision = await self._get_accessible_or_raise(decision_id, requester_id)
        has_override = await self._has_live_override(decision.id, self._clock.now())
        return DecisionView(
            decision=decision,
            effective_status=effective_decision_status(decision, has_override),
        )

    async def list_decisions(
        self,
        requester_id: UUID,
        status: DecisionStatus | None = None,
        category: str | None = None,
    ) -> list[DecisionView]:
        """Decisions the requester created or owns, newest first.

        ``status`` filters on the effective status, so ``overridden`` is a
        valid filter and a locked-but-overridden decision is not ``locked``.
        """
        query = select(Decision).where(
            or_(Decision.created_by == requester_id, Decision.owner_id == requester_id)
        )
        if category:
            query = query.where(Decision.category == category)
        query = query.order_by(Decision.created_at.desc())

        result = await self._session.execute(query)
        decisions = result.scalars().all()

        overridden = await self._live_override_targets(
            (d.id for d in decisions), self._clock.now()
        )
        views = [
            DecisionView(
                decision=d,
                effective_status=effective_decision_status(d, d.id in overridden),
            )
            for d in decisions
        ]
        if status is not None:
            views = [v for v in views if v.effective_status == status]
        return views

    async def find_accessible(self, decision_id: UUID, requester_id: UUID) -> Decision | None:
        """Decision if the requester created or owns it, else None."""
        result = await self._session.execute(
            select(Decision).where(
                Decision.id == decision_id,
                or_(Decision.created_by == requester_id, Decision.owner_id == requester_id),
            )
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    async def _get_accessible_or_raise(
        self,
        decision_id: UUID,
        requester_id: UUID,
        for_update: bool = False,
    ) -> Decision:
        # Absent and forbidden look the same to the caller
        query = select(Decision).where(
            Decision.id == decision_id,
            or_(Decision.created_by == requester_id, Decision.owner_id == requester_id),
        )
        if for_update:
            query = query.with_for_update()
        result = await self._session.execute(query)
        decision = result.scalar_one_or_none()

        if not decision:
            raise NotFoundError(f"Decision {decision_id} not found")

        return decision

    async def _has_live_override(self, decision_id: UUID, now: datetime) -> bool:
        return decision_id in await self._live_override_targets([decision_id], now)

    async def _live_override_targets(
        self,
        decision_ids: Iterable[UUID],
        now: datetime,
    ) -> set[UUID]:
        ids: Sequence[UUID] = list(decision_ids)
        if not ids:
            return set()
        result = await self._session.execute(
            select(EmergencyOverride.decision_id).where(
                EmergencyOverride.decision_id.in_(ids),
                EmergencyOverride.status == OverrideStatus.ACTIVE,
                EmergencyOverride.expires_at > now,
            )
        )
        return set(result.scalars().all())
