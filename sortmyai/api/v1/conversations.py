"""
Conversation API routes.
Opening conversations, inbox previews, message requests and history.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.database import get_db
from sortmyai.dependencies import get_current_user
from sortmyai.models.user import User
from sortmyai.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    MessagePreviewListResponse,
    RespondRequest,
)
from sortmyai.schemas.message import MarkReadResponse, MessageListResponse, MessageResponse
from sortmyai.services.conversation_service import ConversationService

router = APIRouter()


@router.post(
    "/",
    response_model=ConversationResponse,
    status_code=status.HTTP_200_OK,
    summary="Open a conversation",
    description="Return the conversation with another user, creating it when it does not exist yet."
)
async def open_conversation(
    conversation_data: ConversationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get or create the direct conversation with **participant_id**.

    The same conversation is returned whichever participant opens it.
    """
    service = ConversationService(db)
    conversation_id = await service.get_or_create_conversation(
        current_user.id, conversation_data.participant_id
    )
    return await service.get_conversation(conversation_id, current_user.id)


@router.get(
    "/",
    response_model=MessagePreviewListResponse,
    summary="List conversation previews",
    description="Inbox previews for the current user, newest first."
)
async def list_previews(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    previews = await ConversationService(db).get_message_previews(current_user.id)
    return MessagePreviewListResponse(data=previews)


@router.get(
    "/{conversation_id}",
    response_model=ConversationResponse,
    summary="Get conversation"
)
async def get_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ConversationService(db).get_conversation(conversation_id, current_user.id)


@router.post(
    "/{conversation_id}/respond",
    response_model=ConversationResponse,
    summary="Respond to a message request",
    description="Accept or reject a pending message request. Only the recipient may respond."
)
async def respond_to_request(
    conversation_id: str,
    response_data: RespondRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ConversationService(db).respond_to_request(
        conversation_id, current_user.id, response_data.decision
    )


@router.get(
    "/{conversation_id}/messages",
    response_model=MessageListResponse,
    summary="Get conversation messages",
    description="Latest messages, oldest first."
)
async def get_messages(
    conversation_id: str,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    messages = await ConversationService(db).get_messages(
        conversation_id, current_user.id, limit=limit
    )
    return MessageListResponse(data=[MessageResponse.model_validate(m) for m in messages])


@router.post(
    "/{conversation_id}/read",
    response_model=MarkReadResponse,
    summary="Mark conversation as read"
)
async def mark_conversation_read(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    count = await ConversationService(db).mark_conversation_read(conversation_id, current_user.id)
    return MarkReadResponse(updated_count=count)
