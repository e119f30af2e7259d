"""SQLAlchemy ORM Models for Conflict Governance."""

from .base import Base, TimestampMixin, UTCDateTime, UUIDMixin
from .models import (
    # Enums
    DecisionStatus,
    NotificationType,
    OverrideStatus,
    TopicStatus,
    # External collaborators
    Child,
    Role,
    Task,
    User,
    # Governance
    CommunicationControl,
    Decision,
    EmergencyOverride,
    Notification,
)

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "UTCDateTime",
    # Enums
    "DecisionStatus",
    "TopicStatus",
    "OverrideStatus",
    "NotificationType",
    # External collaborators
    "User",
    "Role",
    "Child",
    "Task",
    # Governance
    "Decision",
    "CommunicationControl",
    "EmergencyOverride",
    "Notification",
]
