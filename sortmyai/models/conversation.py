"""
Conversation model.

A conversation is a direct channel between exactly two users, keyed by a
hash of the sorted participant pair. Its request status is unset until the
first message is sent.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sortmyai.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from sortmyai.models.message import Message


class ConversationStatus(str, enum.Enum):
    """Message request status."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Conversation(Base, TimestampMixin):
    """Direct conversation between two users."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("participant_a", "participant_b", name="uq_conversations_pair"),
        CheckConstraint("participant_a < participant_b", name="ck_conversations_sorted_pair"),
    )

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        doc="Deterministic key derived from the participant pair"
    )

    participant_a: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="Lower of the two participant ids"
    )

    participant_b: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="Higher of the two participant ids"
    )

    status: Mapped[ConversationStatus | None] = mapped_column(
        SQLEnum(ConversationStatus, name="conversation_status", native_enum=False,
                values_callable=lambda e: [m.value for m in e]),
        nullable=True,
        doc="Request status; null until the first message"
    )

    requester_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        doc="Sender of the first message"
    )

    last_message_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_sender_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    messages: Mapped[List["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="select"
    )

    @property
    def participants(self) -> List[str]:
        return [self.participant_a, self.participant_b]

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant_a, self.participant_b)

    def other_participant(self, user_id: str) -> str:
        """The counterpart of user_id (who must be a participant)."""
        return self.participant_b if user_id == self.participant_a else self.participant_a

    @property
    def has_messages(self) -> bool:
        return self.last_message_at is not None

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, status={self.status})>"


Index("idx_conversations_participant_a", Conversation.participant_a)
Index("idx_conversations_participant_b", Conversation.participant_b)
