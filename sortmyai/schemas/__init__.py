"""
Pydantic schema exports.
Provides request/response models for API endpoints.
"""
from sortmyai.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    MessagePreview,
    MessagePreviewListResponse,
    RequestDecision,
    RespondRequest,
)
from sortmyai.schemas.follow import FollowCounters, FollowResponse, FollowStatusResponse
from sortmyai.schemas.message import (
    MarkReadResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)
from sortmyai.schemas.notification import NotificationSummary
from sortmyai.schemas.user import UserListResponse, UserResponse, UserSummary

__all__ = [
    # Conversation schemas
    "ConversationCreate",
    "ConversationResponse",
    "MessagePreview",
    "MessagePreviewListResponse",
    "RequestDecision",
    "RespondRequest",
    # Follow schemas
    "FollowCounters",
    "FollowResponse",
    "FollowStatusResponse",
    # Message schemas
    "MarkReadResponse",
    "MessageCreate",
    "MessageListResponse",
    "MessageResponse",
    # Notification schemas
    "NotificationSummary",
    # User schemas
    "UserListResponse",
    "UserResponse",
    "UserSummary",
]
