"""
SQLAlchemy models for the SortMyAI social backend.

All models must be imported here for Alembic auto-generation to work.
"""

# Import Base first
from sortmyai.models.base import Base, TimestampMixin, generate_id

from sortmyai.models.user import User
from sortmyai.models.follow import Follow
from sortmyai.models.conversation import Conversation, ConversationStatus
from sortmyai.models.message import Message, AttachmentType

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "generate_id",
    # Users and the follow graph
    "User",
    "Follow",
    # Conversations
    "Conversation",
    "ConversationStatus",
    # Messages
    "Message",
    "AttachmentType",
]
