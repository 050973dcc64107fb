"""
Pydantic schemas for conversation requests and responses.
"""
import enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sortmyai.models.conversation import ConversationStatus
from sortmyai.schemas.types import UTCDatetime, to_camel


class RequestDecision(str, enum.Enum):
    """Answer to a message request."""
    ACCEPT = "accept"
    REJECT = "reject"


# ============================================================================
# Request Schemas
# ============================================================================

class ConversationCreate(BaseModel):
    """Open (or find) the conversation with another user."""

    participant_id: str = Field(..., min_length=1, description="The other user's id")

    @field_validator("participant_id")
    @classmethod
    def validate_participant_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("participant_id cannot be blank")
        return v.strip()

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_extra={"example": {"participantId": "uid-456"}}
    )


class RespondRequest(BaseModel):
    """Accept or reject a pending message request."""

    decision: RequestDecision

    class Config:
        json_schema_extra = {"example": {"decision": "accept"}}


# ============================================================================
# Response Schemas
# ============================================================================

class ConversationResponse(BaseModel):
    """Conversation as seen by a participant."""

    id: str
    participants: List[str]
    status: Optional[ConversationStatus] = None
    requester_id: Optional[str] = None
    last_message_content: Optional[str] = None
    last_message_sender_id: Optional[str] = None
    last_message_at: Optional[UTCDatetime] = None
    created_at: UTCDatetime
    updated_at: UTCDatetime

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class MessagePreview(BaseModel):
    """
    Inbox entry for one conversation, relative to the viewing user.

    Derived on every read; never persisted.
    """

    conversation_id: str
    participant_id: str
    participant_name: str
    participant_avatar: Optional[str] = None
    last_message: str
    timestamp: UTCDatetime
    unread_count: int = 0
    status: Optional[ConversationStatus] = None
    is_requester: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_extra={
            "example": {
                "conversationId": "3f0c2b6e9a...",
                "participantId": "uid-456",
                "participantName": "grace",
                "participantAvatar": None,
                "lastMessage": "Sent you a message request",
                "timestamp": "2025-10-10T12:00:00Z",
                "unreadCount": 1,
                "status": "pending",
                "isRequester": False
            }
        }
    )


class MessagePreviewListResponse(BaseModel):
    data: List[MessagePreview]
