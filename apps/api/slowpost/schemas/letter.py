"""Pydantic schemas for letters."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from slowpost.db.enums import AddressingType, ContentType


class LetterCreate(BaseModel):
    """
    Request to start a draft.

    Pen-pal matches may pass ``recipient_user_id`` instead of
    ``addressing_value``.
    """

    addressing_type: AddressingType
    addressing_value: str | None = Field(default=None, max_length=500)
    recipient_user_id: UUID | None = None
    content_type: ContentType = ContentType.TYPED
    body: str | None = Field(default=None, max_length=50000)


class DraftRead(BaseModel):
    """Sender view of a draft. Never says whether the recipient resolved."""

    id: UUID
    status: str
    addressing_type: str
    addressing_value: str
    content_type: str
    body: str | None
    in_reply_to_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LetterRead(BaseModel):
    """Recipient view of a delivered letter."""

    id: UUID
    status: str
    sender_username: str
    sender_region_at_send: str | None
    sender_timezone_at_send: str | None
    content_type: str
    body: str | None
    in_reply_to_id: UUID | None
    sent_at: datetime | None
    delivered_at: datetime | None
    opened_at: datetime | None


class LetterActionResponse(BaseModel):
    """Confirmation with no other payload."""

    success: bool = True
