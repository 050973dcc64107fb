"""
Notification API routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.database import get_db
from sortmyai.dependencies import get_current_user
from sortmyai.models.user import User
from sortmyai.schemas.notification import NotificationSummary
from sortmyai.services.notification_service import NotificationService

router = APIRouter()


@router.get(
    "/summary",
    response_model=NotificationSummary,
    summary="Get notification summary",
    description="Unread conversations, unread messages and pending message requests for the current user."
)
async def get_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await NotificationService(db).get_summary(current_user.id)
