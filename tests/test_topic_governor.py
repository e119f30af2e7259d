"""
Tests for the Topic Governor - Verifying Escalation and Lazy Expiry.

These tests verify:
1. ADD: Topics are normalized and globally unique
2. DISCUSS: The third discussion freezes the topic for 24 hours
3. EXPIRY: Passed windows read as active without rewriting the row
4. STATUS: Manual freeze hours are clamped; cooldown is fixed at 2 hours
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from conflict_governance.core import FrozenClock
from conflict_governance.models import (
    CommunicationControl,
    Notification,
    NotificationType,
    TopicStatus,
    User,
)
from conflict_governance.services import (
    ConcurrencyError,
    ConflictError,
    LockedError,
    NotFoundError,
    TopicGovernor,
    ValidationError,
    normalize_topic,
)

from .conftest import T0


# =============================================================================
# TEST: ADD / REMOVE
# =============================================================================


class TestAddTopic:
    def test_normalize(self):
        assert normalize_topic("  Budget Talks ") == "budget talks"

    async def test_add_stores_normalized_topic(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)

        control = await governor.add_topic("  Budget Talks ", owner_id=alice.id)

        assert control.topic == "budget talks"
        assert control.status == TopicStatus.ACTIVE
        assert control.discussion_count == 0
        assert control.freeze_until is None
        assert control.last_discussed == T0

    async def test_duplicate_after_normalization_conflicts(
        self, session: AsyncSession, clock: FrozenClock, alice: User, carol: User
    ):
        governor = TopicGovernor(session, clock)
        await governor.add_topic("  Budget Talks ", owner_id=alice.id)

        # Uniqueness is global, not per couple
        with pytest.raises(ConflictError):
            await governor.add_topic("budget talks", owner_id=carol.id)

    async def test_blank_topic_rejected(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)

        with pytest.raises(ValidationError):
            await governor.add_topic("   ", owner_id=alice.id)

    async def test_remove_only_by_owner(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("holidays", owner_id=alice.id)

        with pytest.raises(NotFoundError):
            await governor.remove_topic(control.id, bob.id)

        await governor.remove_topic(control.id, alice.id)
        assert await governor.list_topics(alice.id) == []


# =============================================================================
# TEST: RECORD DISCUSSION
# =============================================================================


class TestRecordDiscussion:
    async def test_third_discussion_freezes(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)

        first = await governor.record_discussion(control.id, alice.id)
        second = await governor.record_discussion(control.id, bob.id)
        assert not first.auto_frozen
        assert not second.auto_frozen
        assert second.control.discussion_count == 2

        clock.advance(minutes=30)
        third = await governor.record_discussion(control.id, alice.id)

        assert third.auto_frozen
        assert third.message is not None
        assert third.control.status == TopicStatus.FROZEN
        assert third.control.discussion_count == 3
        assert third.control.freeze_until == T0 + timedelta(hours=24, minutes=30)
        assert third.control.last_discussed == T0 + timedelta(minutes=30)

    async def test_discussing_frozen_topic_is_locked(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)
        for _ in range(3):
            await governor.record_discussion(control.id, alice.id)

        clock.advance(hours=1)
        with pytest.raises(LockedError) as exc_info:
            await governor.record_discussion(control.id, alice.id)

        assert exc_info.value.unlock_at == T0 + timedelta(hours=24)
        assert control.discussion_count == 3

    async def test_auto_freeze_notifies_partner(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)
        for _ in range(3):
            await governor.record_discussion(control.id, alice.id)

        result = await session.execute(
            select(Notification).where(Notification.user_id == bob.id)
        )
        notices = result.scalars().all()
        assert len(notices) == 1
        assert notices[0].type == NotificationType.REMINDER
        assert notices[0].data["topic_id"] == str(control.id)

    async def test_expired_freeze_reads_active_without_write(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)
        for _ in range(3):
            await governor.record_discussion(control.id, alice.id)

        clock.advance(hours=24)
        views = await governor.list_topics(alice.id)
        assert [v.effective_status for v in views] == [TopicStatus.ACTIVE]

        frozen = await governor.list_topics(alice.id, status=TopicStatus.FROZEN)
        assert frozen == []

        stored = await session.scalar(
            select(CommunicationControl.status).where(CommunicationControl.id == control.id)
        )
        assert stored == TopicStatus.FROZEN

    async def test_counter_not_reset_after_thaw(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)
        for _ in range(3):
            await governor.record_discussion(control.id, alice.id)

        clock.advance(hours=25)
        result = await governor.record_discussion(control.id, alice.id)

        assert result.auto_frozen
        assert result.control.discussion_count == 4
        assert result.control.freeze_until == T0 + timedelta(hours=49)

    async def test_passed_cooldown_is_normalized_on_write(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("pickup times", owner_id=alice.id)
        await governor.set_status(control.id, alice.id, TopicStatus.COOLDOWN)

        clock.advance(hours=3)
        result = await governor.record_discussion(control.id, alice.id)

        assert not result.auto_frozen
        assert result.control.status == TopicStatus.ACTIVE
        assert result.control.freeze_until is None
        assert result.control.discussion_count == 1

    async def test_stranger_cannot_see_couple_topic(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User, carol: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)

        # The partner shares visibility
        await governor.record_discussion(control.id, bob.id)

        with pytest.raises(NotFoundError):
            await governor.record_discussion(control.id, carol.id)
        with pytest.raises(NotFoundError):
            await governor.record_discussion(uuid4(), alice.id)

    async def test_global_topic_visible_to_all(
        self, session: AsyncSession, clock: FrozenClock, alice: User, carol: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("Money", owner_id=None)

        result = await governor.record_discussion(control.id, carol.id)
        assert result.control.discussion_count == 1

        views = await governor.list_topics(alice.id)
        assert [v.control.topic for v in views] == ["money"]

    async def test_partner_lists_shared_topic(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User, carol: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("bedtime", owner_id=alice.id)
        await governor.record_discussion(control.id, bob.id)

        views = await governor.list_topics(bob.id)
        assert [v.control.id for v in views] == [control.id]
        assert views[0].control.discussion_count == 1

        assert await governor.list_topics(carol.id) == []

    async def test_get_topic_respects_visibility(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User, carol: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("bedtime", owner_id=alice.id)
        await governor.set_status(control.id, alice.id, TopicStatus.COOLDOWN)

        view = await governor.get_topic(control.id, bob.id)
        assert view.effective_status == TopicStatus.COOLDOWN

        clock.advance(hours=2)
        view = await governor.get_topic(control.id, bob.id)
        assert view.effective_status == TopicStatus.ACTIVE

        with pytest.raises(NotFoundError):
            await governor.get_topic(control.id, carol.id)

    async def test_stale_version_rejected_on_discussion(
        self, session: AsyncSession, clock: FrozenClock, alice: User, bob: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("screen time", owner_id=alice.id)
        await governor.record_discussion(control.id, alice.id)
        await governor.record_discussion(control.id, alice.id)

        # The partner's racing discussion lands first
        await session.execute(
            update(CommunicationControl)
            .where(CommunicationControl.id == control.id)
            .values(
                discussion_count=CommunicationControl.discussion_count + 1,
                version=CommunicationControl.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrencyError):
            await governor.record_discussion(control.id, bob.id)


# =============================================================================
# TEST: SET STATUS
# =============================================================================


class TestSetStatus:
    @pytest.mark.parametrize(
        "requested, applied",
        [(None, 24), (0, 1), (500, 168), (6, 6)],
    )
    async def test_freeze_hours_clamped(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        alice: User,
        requested,
        applied,
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("holidays", owner_id=alice.id)

        updated = await governor.set_status(
            control.id, alice.id, TopicStatus.FROZEN, freeze_hours=requested
        )

        assert updated.status == TopicStatus.FROZEN
        assert updated.freeze_until == T0 + timedelta(hours=applied)

    async def test_cooldown_is_two_hours(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("holidays", owner_id=alice.id)

        updated = await governor.set_status(
            control.id, alice.id, TopicStatus.COOLDOWN, freeze_hours=100
        )

        assert updated.status == TopicStatus.COOLDOWN
        assert updated.freeze_until == T0 + timedelta(hours=2)

        with pytest.raises(LockedError):
            await governor.record_discussion(control.id, alice.id)

    async def test_active_is_manual_thaw(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("holidays", owner_id=alice.id)
        await governor.set_status(control.id, alice.id, TopicStatus.FROZEN)

        updated = await governor.set_status(control.id, alice.id, TopicStatus.ACTIVE)
        assert updated.status == TopicStatus.ACTIVE
        assert updated.freeze_until is None

        result = await governor.record_discussion(control.id, alice.id)
        assert result.control.discussion_count == 1

    async def test_stale_version_rejected_on_status_change(
        self, session: AsyncSession, clock: FrozenClock, alice: User
    ):
        governor = TopicGovernor(session, clock)
        control = await governor.add_topic("holidays", owner_id=alice.id)

        await session.execute(
            update(CommunicationControl)
            .where(CommunicationControl.id == control.id)
            .values(version=CommunicationControl.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrencyError):
            await governor.set_status(control.id, alice.id, TopicStatus.FROZEN)
