"""
Conversation endpoints: one thread per parent/child, visible to all staff.
"""

from fastapi import APIRouter, Depends, status

from workshop_booking.api.deps import get_conversation_service
from workshop_booking.schemas.conversation import (
    ConversationStart,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    BroadcastRequest,
    BroadcastResponse,
)
from workshop_booking.services.conversation_service import ConversationService
from workshop_booking.core.security import get_current_principal
from workshop_booking.domain.principal import Principal

router = APIRouter(prefix="/conversations", tags=["Conversations"])


@router.post("/start", response_model=ConversationResponse)
async def start_conversation(
    request: ConversationStart,
    principal: Principal = Depends(get_current_principal),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.start_conversation(principal, owner_id=request.owner_id)


@router.get("/", response_model=list[ConversationResponse])
async def list_conversations(
    principal: Principal = Depends(get_current_principal),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.list_conversations(principal)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.list_messages(principal, conversation_id)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: int,
    message: MessageCreate,
    principal: Principal = Depends(get_current_principal),
    service: ConversationService = Depends(get_conversation_service),
):
    """Append a message; joined clients get it live, the owner also by push."""
    return await service.append_message(principal, conversation_id, message.body)


@router.post("/broadcast", response_model=BroadcastResponse)
async def broadcast(
    message: BroadcastRequest,
    principal: Principal = Depends(get_current_principal),
    service: ConversationService = Depends(get_conversation_service),
):
    """Admin only: post the same message to every parent and child."""
    recipients = await service.broadcast(principal, message.body)
    return BroadcastResponse(recipients=recipients)
