"""
Lazy expiry: derive the effective state of time-boxed records.

Nothing here writes to the store. A frozen topic whose window has passed is
reported as active on every read while its stored row stays untouched; an
override past ``expires_at`` is simply no longer live.
"""

from datetime import datetime

from ..models import (
    CommunicationControl,
    Decision,
    DecisionStatus,
    EmergencyOverride,
    OverrideStatus,
    TopicStatus,
)

RESTRICTED_TOPIC_STATUSES = (TopicStatus.FROZEN, TopicStatus.COOLDOWN)


def effective_topic_status(
    status: TopicStatus,
    freeze_until: datetime | None,
    now: datetime,
) -> TopicStatus:
    """Status a topic presents at ``now``."""
    if status in RESTRICTED_TOPIC_STATUSES:
        if freeze_until is None or freeze_until <= now:
            return TopicStatus.ACTIVE
    return status


def is_topic_restricted(control: CommunicationControl, now: datetime) -> bool:
    """True while a freeze or cooldown window is still running."""
    return (
        control.status in RESTRICTED_TOPIC_STATUSES
        and control.freeze_until is not None
        and control.freeze_until > now
    )


def is_override_live(override: EmergencyOverride, now: datetime) -> bool:
    return override.status == OverrideStatus.ACTIVE and override.expires_at > now


def effective_override_status(override: EmergencyOverride, now: datetime) -> OverrideStatus:
    if is_override_live(override, now):
        return OverrideStatus.ACTIVE
    return OverrideStatus.EXPIRED


def effective_decision_status(decision: Decision, has_live_override: bool) -> DecisionStatus:
    """Stored status with the emergency-override overlay applied."""
    if has_live_override:
        return DecisionStatus.OVERRIDDEN
    return decision.status


def can_lock_at(decision: Decision, now: datetime) -> bool:
    return now >= decision.discussion_ends_at
