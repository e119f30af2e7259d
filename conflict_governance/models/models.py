"""SQLAlchemy ORM models for Conflict Governance.

Users, roles, children and tasks belong to the surrounding application and
are only read here. Decisions, communication controls, emergency overrides
and notifications are owned by the governance core.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDMixin


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [e.value for e in enum_cls]


# =============================================================================
# ENUMS
# =============================================================================


class DecisionStatus(str, PyEnum):
    ACTIVE = "active"
    LOCKED = "locked"
    OVERRIDDEN = "overridden"  # Read-time overlay only, never stored


class TopicStatus(str, PyEnum):
    ACTIVE = "active"
    FROZEN = "frozen"
    COOLDOWN = "cooldown"


class OverrideStatus(str, PyEnum):
    ACTIVE = "active"
    EXPIRED = "expired"


class NotificationType(str, PyEnum):
    ROLE_VIOLATION = "role_violation"
    DECISION_LOCK = "decision_lock"
    EXPENSE_UPDATE = "expense_update"
    REMINDER = "reminder"
    EMERGENCY = "emergency"


# =============================================================================
# EXTERNAL COLLABORATORS (read-only to the core)
# =============================================================================


class User(Base, UUIDMixin, TimestampMixin):
    """Application user, optionally linked to a partner."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    partner_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))

    __table_args__ = (
        Index("idx_users_partner", "partner_id"),
    )


class Role(Base, UUIDMixin, TimestampMixin):
    """Area of responsibility owned by one partner."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("idx_roles_owner", "owner_id"),
    )


class Child(Base, UUIDMixin, TimestampMixin):
    """Child shared by up to two parents."""

    __tablename__ = "children"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id_1: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    parent_id_2: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))


class Task(Base, UUIDMixin, TimestampMixin):
    """Household task assigned to one partner."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active")
    created_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    assigned_to: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        Index("idx_tasks_created_by", "created_by"),
        Index("idx_tasks_assigned_to", "assigned_to"),
    )


# =============================================================================
# AUTHORITY LEDGER
# =============================================================================


class Decision(Base, UUIDMixin, TimestampMixin):
    """A governed choice with one authority holder and a discussion window."""

    __tablename__ = "decisions"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    role_id: Mapped[UUID | None] = mapped_column(ForeignKey("roles.id"))
    child_id: Mapped[UUID | None] = mapped_column(ForeignKey("children.id"))
    status: Mapped[DecisionStatus] = mapped_column(
        Enum(DecisionStatus, name="decision_status", values_callable=_enum_values),
        default=DecisionStatus.ACTIVE,
        nullable=False,
    )
    discussion_ends_at: Mapped[datetime] = mapped_column(nullable=False)
    locked_at: Mapped[datetime | None] = mapped_column()
    locked_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_decisions_owner", "owner_id"),
        Index("idx_decisions_created_by", "created_by"),
        Index("idx_decisions_status", "status", "category"),
    )


# =============================================================================
# TOPIC GOVERNOR
# =============================================================================


class CommunicationControl(Base, UUIDMixin, TimestampMixin):
    """A conversation topic with discussion counting and freeze windows."""

    __tablename__ = "communication_controls"

    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[TopicStatus] = mapped_column(
        Enum(TopicStatus, name="topic_status", values_callable=_enum_values),
        default=TopicStatus.ACTIVE,
        nullable=False,
    )
    last_discussed: Mapped[datetime] = mapped_column(nullable=False)
    discussion_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    freeze_until: Mapped[datetime | None] = mapped_column()
    user_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        # Global, not per-couple
        UniqueConstraint("topic"),
        CheckConstraint("discussion_count >= 0", name="discussion_count_non_negative"),
        Index("idx_communication_controls_user", "user_id"),
    )


# =============================================================================
# OVERRIDE GATE
# =============================================================================


class EmergencyOverride(Base, UUIDMixin, TimestampMixin):
    """Time-boxed bypass of a locked decision or task."""

    __tablename__ = "emergency_overrides"

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    decision_id: Mapped[UUID | None] = mapped_column(ForeignKey("decisions.id"))
    task_id: Mapped[UUID | None] = mapped_column(ForeignKey("tasks.id"))
    status: Mapped[OverrideStatus] = mapped_column(
        Enum(OverrideStatus, name="override_status", values_callable=_enum_values),
        default=OverrideStatus.ACTIVE,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(decision_id IS NULL) <> (task_id IS NULL)",
            name="exactly_one_target",
        ),
        Index("idx_emergency_overrides_user_time", "user_id", "created_at"),
        Index("idx_emergency_overrides_decision", "decision_id"),
    )


# =============================================================================
# NOTIFICATION SINK
# =============================================================================


class Notification(Base, UUIDMixin, TimestampMixin):
    """Polled, per-recipient notice emitted as a side effect."""

    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", values_callable=_enum_values),
        nullable=False,
    )
    data: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_notifications_user_time", "user_id", "created_at"),
    )
