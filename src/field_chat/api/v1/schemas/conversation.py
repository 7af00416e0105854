from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CreateConversationRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    customer_id: UUID | None = None


class ConversationResponse(BaseModel):
    id: UUID
    business_id: UUID
    title: str
    kind: str
    customer_id: UUID | None
    created_by: UUID
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CreateConversationResponse(ConversationResponse):
    existed: bool = False
