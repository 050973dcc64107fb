"""
Pydantic schemas for message requests and responses.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sortmyai.models.message import AttachmentType
from sortmyai.schemas.types import UTCDatetime, to_camel


class MessageCreate(BaseModel):
    """Schema for sending a message. The receiver is derived from the conversation."""

    conversation_id: str = Field(..., description="Conversation ID")
    content: str = Field(default="", max_length=10000, description="Message text content")
    attachment_url: Optional[str] = Field(None, max_length=1000, description="Uploaded attachment reference")
    attachment_type: Optional[AttachmentType] = None

    @model_validator(mode="after")
    def validate_payload(self) -> "MessageCreate":
        """A message needs text or an attachment; an attachment needs a type."""
        if not self.content.strip() and not self.attachment_url:
            raise ValueError("Message must have content or an attachment")
        if self.attachment_url and self.attachment_type is None:
            raise ValueError("attachment_type is required with attachment_url")
        return self

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_extra={
            "example": {
                "conversationId": "3f0c2b6e9a...",
                "content": "Loved your latest video!",
                "attachmentUrl": None,
                "attachmentType": None
            }
        }
    )


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    content: str
    attachment_url: Optional[str] = None
    attachment_type: Optional[AttachmentType] = None
    read: bool
    created_at: UTCDatetime

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class MessageListResponse(BaseModel):
    data: List[MessageResponse]


class MarkReadResponse(BaseModel):
    """Result of a read-receipt operation."""

    updated_count: int

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)
