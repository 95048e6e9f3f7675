"""FastAPI routes for conversations and messages.

Endpoints:
    GET    /conversations                  - Grouped, paginated history
    POST   /conversations/load-more        - Reveal the next page
    POST   /conversations                  - Create and select a conversation
    GET    /conversations/{id}             - Conversation with messages
    POST   /conversations/{id}/select      - Make a conversation active
    PATCH  /conversations/{id}             - Rename
    DELETE /conversations/{id}             - Archive
    POST   /conversations/{id}/restore     - Un-archive
    POST   /conversations/{id}/messages    - Send a user message
    POST   /conversations/{id}/retry       - Re-issue the last user message
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.dependencies import get_session_manager
from src.api.schemas import (
    ConversationDetailResponse,
    ConversationListResponse,
    CreateConversationRequest,
    MessageResponse,
    RenameConversationRequest,
    SendMessageRequest,
    SendMessageResponse,
)
from src.errors import NotFoundError
from src.orchestrator.models.conversation import Conversation, Message
from src.services.session_manager import ConversationSessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


def _message_response(manager: ConversationSessionManager, message: Message) -> MessageResponse:
    return MessageResponse.from_message(message, manager.handles_for(message))


def _detail_response(
    manager: ConversationSessionManager, conversation: Conversation
) -> ConversationDetailResponse:
    is_active = manager.active_conversation is conversation
    return ConversationDetailResponse(
        id=conversation.id,
        title=conversation.title,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        archived=conversation.archived,
        messages=[_message_response(manager, m) for m in conversation.messages],
        error=manager.error if is_active else None,
    )


def _require(manager: ConversationSessionManager, conversation_id: str) -> Conversation:
    try:
        return manager.get_conversation(conversation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _list_response(
    manager: ConversationSessionManager, now: Optional[datetime] = None
) -> ConversationListResponse:
    active = manager.active_conversation
    return ConversationListResponse.from_page(manager.page(now), active.id if active else None)


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    now: Optional[datetime] = Query(None, description="Reference time for grouping"),
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationListResponse:
    """List active conversations grouped by recency.

    Only the revealed pages are returned; use load-more for the next one.
    """
    return _list_response(manager, now)


@router.post("/load-more", response_model=ConversationListResponse)
async def load_more_conversations(
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationListResponse:
    """Reveal the next page of conversations."""
    manager.load_more()
    return _list_response(manager)


@router.post("", response_model=ConversationDetailResponse, status_code=201)
async def create_conversation(
    payload: CreateConversationRequest | None = None,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationDetailResponse:
    """Create a conversation and make it active."""
    title = payload.title if payload else None
    conversation = manager.create_conversation(title=title)
    return _detail_response(manager, conversation)


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationDetailResponse:
    """Return a conversation with its messages and action states."""
    return _detail_response(manager, _require(manager, conversation_id))


@router.post("/{conversation_id}/select", response_model=ConversationDetailResponse)
async def select_conversation(
    conversation_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationDetailResponse:
    """Make a conversation active and pre-populate its document context."""
    _require(manager, conversation_id)
    conversation = await manager.open_conversation(conversation_id)
    return _detail_response(manager, conversation)


@router.patch("/{conversation_id}", response_model=ConversationDetailResponse)
async def rename_conversation(
    conversation_id: str,
    payload: RenameConversationRequest,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationDetailResponse:
    """Rename a conversation."""
    _require(manager, conversation_id)
    conversation = manager.rename_conversation(conversation_id, payload.title)
    return _detail_response(manager, conversation)


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> None:
    """Archive a conversation. The next most recent one becomes active."""
    _require(manager, conversation_id)
    manager.delete_conversation(conversation_id)


@router.post("/{conversation_id}/restore", response_model=ConversationDetailResponse)
async def restore_conversation(
    conversation_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ConversationDetailResponse:
    """Bring an archived conversation back into the history."""
    _require(manager, conversation_id)
    conversation = manager.restore_conversation(conversation_id)
    return _detail_response(manager, conversation)


@router.post("/{conversation_id}/messages", response_model=SendMessageResponse)
async def send_message(
    conversation_id: str,
    payload: SendMessageRequest,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> SendMessageResponse:
    """Send a user message to a conversation and return the assistant reply.

    The conversation becomes active first. Eligible actions in the reply
    have already been auto-executed when this returns.
    """
    _require(manager, conversation_id)
    manager.select_conversation(conversation_id)
    reply = await manager.send_message(payload.content)
    return SendMessageResponse(
        conversation_id=conversation_id,
        message=_message_response(manager, reply),
        error=manager.error,
    )


@router.post("/{conversation_id}/retry", response_model=SendMessageResponse)
async def retry_last_message(
    conversation_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> SendMessageResponse:
    """Re-issue the last user message, replacing the reply after it."""
    _require(manager, conversation_id)
    manager.select_conversation(conversation_id)
    reply = await manager.retry_last_message()
    return SendMessageResponse(
        conversation_id=conversation_id,
        message=_message_response(manager, reply),
        error=manager.error,
    )
