"""
Topic Governor: communication control for recurring conversation topics.

Each discussion of a topic bumps its counter. At the escalation threshold
the topic freezes itself for a fixed period. Freezes and cooldowns are never
swept by a scheduler; a window that has passed simply reads as active.

Note that the discussion counter is not reset when a freeze thaws. A topic
that has already escalated re-freezes on its very next discussion.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.clock import Clock, system_clock
from ..models import CommunicationControl, NotificationType, TopicStatus
from .exceptions import (
    ConcurrencyError,
    ConflictError,
    LockedError,
    NotFoundError,
    ValidationError,
)
from .notifications import NotificationSink, describe_instant
from .partners import get_user_or_raise, is_self_or_partner
from .windows import effective_topic_status, is_topic_restricted

logger = logging.getLogger(__name__)


# =============================================================================
# POLICY
# =============================================================================


@dataclass(frozen=True)
class TopicPolicy:
    """Fixed escalation policy for communication control."""

    # Discussions that trigger an automatic freeze
    escalation_threshold: int = 3

    # Length of the automatic freeze
    auto_freeze_hours: int = 24

    # Manual freeze length when none is given, and its bounds
    default_freeze_hours: int = 24
    min_freeze_hours: int = 1
    max_freeze_hours: int = 168

    # Cooldown is always this long
    cooldown_hours: int = 2


DEFAULT_POLICY = TopicPolicy()


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class TopicView:
    """A topic with the status it presents at read time."""
    control: CommunicationControl
    effective_status: TopicStatus


@dataclass
class DiscussionResult:
    """Outcome of recording one discussion."""
    control: CommunicationControl
    auto_frozen: bool

    @property
    def message(self) -> str | None:
        if self.auto_frozen:
            return "Topic has been automatically frozen due to repeated discussions"
        return None


def normalize_topic(topic: str) -> str:
    return topic.strip().lower()


# =============================================================================
# TOPIC GOVERNOR
# =============================================================================


class TopicGovernor:
    """Owns discussion counting, freezes and cooldowns for topics."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = system_clock,
        notifications: NotificationSink | None = None,
        policy: TopicPolicy = DEFAULT_POLICY,
    ):
        self._session = session
        self._clock = clock
        self._notifications = notifications or NotificationSink(session, clock)
        self._policy = policy

    # =========================================================================
    # CREATE / DELETE
    # =========================================================================

    async def add_topic(self, topic: str, owner_id: UUID | None) -> CommunicationControl:
        """Register a topic. Uniqueness is global across all couples."""
        normalized = normalize_topic(topic)
        if not normalized:
            raise ValidationError("Topic must not be empty", field="topic")

        existing = await self._session.scalar(
            select(CommunicationControl.id).where(CommunicationControl.topic == normalized)
        )
        if existing is not None:
            raise ConflictError("Topic already exists in communication control", field="topic")

        now = self._clock.now()
        control = CommunicationControl(
            topic=normalized,
            status=TopicStatus.ACTIVE,
            last_discussed=now,
            discussion_count=0,
            freeze_until=None,
            user_id=owner_id,
            created_at=now,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(control)
        except IntegrityError as e:
            # Lost an insert race on the unique constraint
            raise ConflictError(
                "Topic already exists in communication control", field="topic"
            ) from e

        logger.info(f"Topic '{normalized}' ({control.id}) added by {owner_id}")
        return control

    async def remove_topic(self, topic_id: UUID, requester_id: UUID) -> None:
        """Delete a topic the requester owns."""
        result = await self._session.execute(
            select(CommunicationControl).where(
                CommunicationControl.id == topic_id,
                CommunicationControl.user_id == requester_id,
            )
        )
        control = result.scalar_one_or_none()
        if not control:
            raise NotFoundError("Communication control not found")

        await self._session.delete(control)
        await self._session.flush()
        logger.info(f"Topic {topic_id} removed by {requester_id}")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_topics(
        self,
        requester_id: UUID,
        status: TopicStatus | None = None,
    ) -> list[TopicView]:
        """Topics owned by the requester or their partner, plus global ones.

        Expired windows are reported as active; the stored row is untouched.
        """
        requester = await get_user_or_raise(self._session, requester_id)
        owners = [requester.id]
        if requester.partner_id is not None:
            owners.append(requester.partner_id)

        result = await self._session.execute(
            select(CommunicationControl)
            .where(
                or_(
                    CommunicationControl.user_id.in_(owners),
                    CommunicationControl.user_id.is_(None),
                )
            )
            .order_by(CommunicationControl.last_discussed.desc())
        )
        now = self._clock.now()
        views = [
            TopicView(
                control=c,
                effective_status=effective_topic_status(c.status, c.freeze_until, now),
            )
            for c in result.scalars().all()
        ]
        if status is not None:
            views = [v for v in views if v.effective_status == status]
        return views

    async def get_topic(self, topic_id: UUID, requester_id: UUID) -> TopicView:
        control = await self._get_visible_or_raise(topic_id, requester_id)
        return TopicView(
            control=control,
            effective_status=effective_topic_status(
                control.status, control.freeze_until, self._clock.now()
            ),
        )

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def record_discussion(self, topic_id: UUID, requester_id: UUID) -> DiscussionResult:
        """
        Count one discussion of a topic.

        Flow:
        1. Reject while a freeze or cooldown window is running
        2. Increment the counter and stamp last_discussed
        3. At the threshold, freeze for the fixed period
        4. Write once, conditioned on the version that was read
        """
        control = await self._get_visible_or_raise(topic_id, requester_id, for_update=True)
        now = self._clock.now()

        if is_topic_restricted(control, now):
            label = "frozen" if control.status == TopicStatus.FROZEN else "in cooldown"
            raise LockedError(
                f"This topic is {label} until {describe_instant(control.freeze_until)}",
                unlock_at=control.freeze_until,
            )

        control.discussion_count += 1
        control.last_discussed = now

        auto_frozen = control.discussion_count >= self._policy.escalation_threshold
        if auto_frozen:
            control.status = TopicStatus.FROZEN
            control.freeze_until = now + timedelta(hours=self._policy.auto_freeze_hours)
        elif control.status != TopicStatus.ACTIVE:
            # Window already passed; make the stored row agree
            control.status = TopicStatus.ACTIVE
            control.freeze_until = None

        await self._flush_or_conflict()

        if auto_frozen:
            logger.info(
                f"Topic {control.id} auto-frozen after {control.discussion_count} discussions "
                f"until {control.freeze_until.isoformat()}"
            )
            await self._notify_auto_freeze(control, requester_id)

        return DiscussionResult(control=control, auto_frozen=auto_frozen)

    async def set_status(
        self,
        topic_id: UUID,
        requester_id: UUID,
        status: TopicStatus,
        freeze_hours: int | None = None,
    ) -> CommunicationControl:
        """Explicit transition. Setting ``active`` is the only manual thaw."""
        control = await self._get_visible_or_raise(topic_id, requester_id, for_update=True)
        now = self._clock.now()

        if status == TopicStatus.FROZEN:
            hours = self._clamp_freeze_hours(freeze_hours)
            control.freeze_until = now + timedelta(hours=hours)
        elif status == TopicStatus.COOLDOWN:
            control.freeze_until = now + timedelta(hours=self._policy.cooldown_hours)
        else:
            control.freeze_until = None
        control.status = status

        await self._flush_or_conflict()

        logger.info(
            f"Topic {control.id} set to {status.value} by {requester_id}"
            + (f" until {control.freeze_until.isoformat()}" if control.freeze_until else "")
        )
        return control

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _clamp_freeze_hours(self, freeze_hours: int | None) -> int:
        if freeze_hours is None:
            return self._policy.default_freeze_hours
        return max(self._policy.min_freeze_hours, min(self._policy.max_freeze_hours, freeze_hours))

    async def _get_visible_or_raise(
        self,
        topic_id: UUID,
        requester_id: UUID,
        for_update: bool = False,
    ) -> CommunicationControl:
        query = select(CommunicationControl).where(CommunicationControl.id == topic_id)
        if for_update:
            query = query.with_for_update()
        result = await self._session.execute(query)
        control = result.scalar_one_or_none()

        if control is None:
            raise NotFoundError("Communication control not found")

        if control.user_id is not None:
            requester = await get_user_or_raise(self._session, requester_id)
            if not is_self_or_partner(requester, control.user_id):
                raise NotFoundError("Communication control not found")

        return control

    async def _flush_or_conflict(self) -> None:
        try:
            await self._session.flush()
        except StaleDataError as e:
            raise ConcurrencyError(
                "The topic was updated concurrently. Reload and try again."
            ) from e

    async def _notify_auto_freeze(self, control: CommunicationControl, requester_id: UUID) -> None:
        requester = await get_user_or_raise(self._session, requester_id)
        await self._notifications.emit_to_partner(
            requester,
            title="Topic Frozen",
            message=(
                f"'{control.topic}' has been discussed {control.discussion_count} times "
                f"and is frozen until {describe_instant(control.freeze_until)}"
            ),
            type=NotificationType.REMINDER,
            data={
                "topic_id": str(control.id),
                "freeze_until": control.freeze_until.isoformat(),
            },
        )
