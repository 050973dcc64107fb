"""
Message API routes.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.database import get_db
from sortmyai.core.rate_limit import limiter, messages_rate
from sortmyai.dependencies import get_current_user
from sortmyai.models.user import User
from sortmyai.schemas.message import MessageCreate, MessageResponse
from sortmyai.services.conversation_service import ConversationService

router = APIRouter()


@router.post(
    "/",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    description="Send a message in a conversation. The first message turns the conversation into a message request."
)
@limiter.limit(messages_rate)
async def send_message(
    request: Request,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Send a message.

    - **409**: the request was declined, or is still waiting for the recipient
    - **403**: you are not a participant
    """
    service = ConversationService(db)
    conversation = await service.get_conversation(message_data.conversation_id, current_user.id)

    return await service.send_message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        receiver_id=conversation.other_participant(current_user.id),
        content=message_data.content,
        attachment_url=message_data.attachment_url,
        attachment_type=message_data.attachment_type,
    )


@router.post(
    "/{message_id}/read",
    response_model=MessageResponse,
    summary="Mark message as read",
    description="Only the receiver may mark a message as read. Repeating the call is a no-op."
)
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ConversationService(db).mark_message_read(message_id, current_user.id)
