"""
Chat API Router

Direct messages between teammates. Only the two participants of a
conversation may read, write or delete it.
"""

from fastapi import APIRouter, Depends, status
from typing import List

from collabboard.middleware.auth import CurrentUser, get_current_user
from collabboard.routers.deps import get_chat_service
from collabboard.schemas.chat import (
    ConnectRequest,
    ConnectResponse,
    Conversation,
    Message,
    MessageCreate,
)
from collabboard.services.chat_service import ChatService
from collabboard.services.errors import AuthorizationError, NotFoundError

import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])  # No prefix since main.py adds /api prefix


async def _conversation_for_participant(
    service: ChatService, conversation_id: str, user_id: str
) -> Conversation:
    conversation = await service.get_conversation(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found", {"conversation_id": conversation_id})
    if user_id not in conversation.participants:
        raise AuthorizationError("Not a participant of this conversation")
    return conversation


@router.get("/chats", response_model=List[Conversation])
async def list_conversations(
    current_user: CurrentUser = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Conversations the authenticated user takes part in, most recent first."""
    return await service.list_conversations(current_user.user_id)


@router.post("/chats/connect", response_model=ConnectResponse)
async def connect(
    request: ConnectRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Start a conversation with the teammate registered under ``friend_email``."""
    conversation_id = await service.connect(
        current_user.user_id,
        current_user.email or "",
        request.friend_email,
        request.friend_name,
    )
    return ConnectResponse(conversation_id=conversation_id)


@router.get("/chats/{conversation_id}/messages", response_model=List[Message])
async def list_messages(
    conversation_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    await _conversation_for_participant(service, conversation_id, current_user.user_id)
    return await service.list_messages(conversation_id)


@router.post("/chats/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: str,
    message: MessageCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    await _conversation_for_participant(service, conversation_id, current_user.user_id)
    message_id = await service.send_message(conversation_id, current_user.user_id, message.text)
    return {"id": message_id}


@router.delete("/chats/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Delete the conversation and all its messages for both participants."""
    await _conversation_for_participant(service, conversation_id, current_user.user_id)
    await service.delete_conversation(conversation_id)
    logger.info(f"Conversation {conversation_id} deleted by {current_user.user_id}")
