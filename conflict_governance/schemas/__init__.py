"""Conflict Governance API Schemas.

Schemas are organized by domain:
- base: common configuration and error responses
- decisions: authority ledger
- topics: communication control
- overrides: emergency overrides
- notifications: polled partner notices
"""

from .base import ErrorDetail, ErrorResponse, GovernanceBaseModel, MessageResponse
from .decisions import DecisionCreate, DecisionResponse
from .notifications import (
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from .overrides import OverrideCreate, OverrideListResponse, OverrideResponse
from .topics import DiscussionResponse, TopicCreate, TopicResponse, TopicStatusUpdate

__all__ = [
    # Base
    "GovernanceBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    # Decisions
    "DecisionCreate",
    "DecisionResponse",
    # Topics
    "TopicCreate",
    "TopicStatusUpdate",
    "TopicResponse",
    "DiscussionResponse",
    # Overrides
    "OverrideCreate",
    "OverrideResponse",
    "OverrideListResponse",
    # Notifications
    "NotificationCreate",
    "NotificationResponse",
    "NotificationListResponse",
]
