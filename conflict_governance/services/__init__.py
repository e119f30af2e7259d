"""Governance services: the conflict-governance state machine."""

from .authority_ledger import AuthorityLedger, CreateDecisionInput, DecisionView
from .exceptions import (
    ConcurrencyError,
    ConflictError,
    GovernanceError,
    LockedError,
    NotFoundError,
    RateLimitError,
    TooEarlyError,
    ValidationError,
)
from .notifications import NotificationPage, NotificationSink
from .override_gate import (
    ActivateOverrideInput,
    OverrideGate,
    OverrideListing,
    OverridePolicy,
)
from .partners import get_user_or_raise, is_self_or_partner
from .topic_governor import (
    DiscussionResult,
    TopicGovernor,
    TopicPolicy,
    TopicView,
    normalize_topic,
)

__all__ = [
    # Authority Ledger
    "AuthorityLedger",
    "CreateDecisionInput",
    "DecisionView",
    # Topic Governor
    "TopicGovernor",
    "TopicPolicy",
    "TopicView",
    "DiscussionResult",
    "normalize_topic",
    # Override Gate
    "OverrideGate",
    "OverridePolicy",
    "ActivateOverrideInput",
    "OverrideListing",
    # Notifications
    "NotificationSink",
    "NotificationPage",
    # Partners
    "is_self_or_partner",
    "get_user_or_raise",
    # Errors
    "GovernanceError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ConcurrencyError",
    "LockedError",
    "RateLimitError",
    "TooEarlyError",
]
