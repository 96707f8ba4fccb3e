"""Schemas for push notification endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class PushSubscribeRequest(BaseModel):
    """Browser PushSubscription, flattened."""

    endpoint: str = Field(..., min_length=1, max_length=2048)
    p256dh: str = Field(..., min_length=1, max_length=512)
    auth: str = Field(..., min_length=1, max_length=512)


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1, max_length=2048)


class PushSubscriptionResponse(BaseModel):
    id: int
    endpoint: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VapidPublicKeyResponse(BaseModel):
    public_key: str


class PushStatusResponse(BaseModel):
    success: bool
    message: str
