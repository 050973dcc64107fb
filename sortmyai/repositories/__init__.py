"""
Repository layer exports.
Provides database access layer for the application.
"""
from sortmyai.repositories.base import BaseRepository
from sortmyai.repositories.conversation_repo import ConversationRepository
from sortmyai.repositories.follow_repo import FollowRepository
from sortmyai.repositories.message_repo import MessageRepository
from sortmyai.repositories.user_repo import UserRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "FollowRepository",
    "MessageRepository",
    "UserRepository",
]
