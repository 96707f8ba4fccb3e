"""
Pydantic schemas for conversations and messages.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ConversationStart(BaseModel):
    owner_id: Optional[int] = None


class ConversationResponse(BaseModel):
    id: int
    owner_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MessageCreate(BaseModel):
    body: Optional[str] = Field(None, max_length=5000)


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    body: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BroadcastRequest(BaseModel):
    body: Optional[str] = Field(None, max_length=5000)


class BroadcastResponse(BaseModel):
    recipients: int
