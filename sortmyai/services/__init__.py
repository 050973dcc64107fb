"""
Service layer exports.
Business logic sits between the API routes and the repositories.
"""
from sortmyai.services.conversation_service import ConversationService
from sortmyai.services.follow_service import FollowService
from sortmyai.services.notification_service import NotificationAggregator, NotificationService
from sortmyai.services.user_service import UserService

__all__ = [
    "ConversationService",
    "FollowService",
    "NotificationAggregator",
    "NotificationService",
    "UserService",
]
