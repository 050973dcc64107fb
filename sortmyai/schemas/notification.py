"""
Notification summary schema.
"""
from pydantic import BaseModel, ConfigDict

from sortmyai.schemas.types import to_camel


class NotificationSummary(BaseModel):
    """Badge counts for the current user."""

    unread_conversation_count: int = 0
    total_unread_messages: int = 0
    pending_requests_count: int = 0

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_extra={
            "example": {
                "unreadConversationCount": 2,
                "totalUnreadMessages": 5,
                "pendingRequestsCount": 1
            }
        }
    )
