"""
Message model.

Messages are append-only; the only mutation is flipping `read`.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, false, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sortmyai.models.base import Base, generate_id
from sortmyai.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from sortmyai.models.conversation import Conversation


class AttachmentType(str, enum.Enum):
    """Kind of attachment referenced by a message."""
    IMAGE = "image"
    FILE = "file"


class Message(Base):
    """A message in a direct conversation."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=generate_id,
    )

    conversation_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Conversation this message belongs to"
    )

    sender_id: Mapped[str] = mapped_column(String(128), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(128), nullable=False)

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        doc="Message text (may be empty when an attachment is present)"
    )

    attachment_url: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
        doc="Reference to an uploaded attachment"
    )

    attachment_type: Mapped[AttachmentType | None] = mapped_column(
        SQLEnum(AttachmentType, name="attachment_type", native_enum=False,
                values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )

    read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    conversation: Mapped["Conversation"] = relationship(back_populates="messages")

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation_id={self.conversation_id})>"


Index("idx_messages_conversation_created", Message.conversation_id, Message.created_at)
# Unread counts per receiver
Index("idx_messages_receiver_unread", Message.receiver_id, Message.read)
