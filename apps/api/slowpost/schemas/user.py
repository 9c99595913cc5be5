"""Account-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from slowpost.db.enums import IdentifierType


class MeRead(BaseModel):
    """Current account."""

    id: UUID
    username: str
    region: str
    timezone: str
    discoverable_by_email: bool
    discoverable_by_phone: bool
    discoverable_by_address: bool
    marked_for_deletion_at: datetime | None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    """Partial profile update. Omitted fields stay as they are."""

    region: str | None = Field(default=None, min_length=1, max_length=100)
    timezone: str | None = Field(default=None, max_length=64)
    discoverable_by_email: bool | None = None
    discoverable_by_phone: bool | None = None
    discoverable_by_address: bool | None = None


class IdentifierCreate(BaseModel):
    """Request to register a contact identifier."""

    identifier_type: IdentifierType
    value: str = Field(..., min_length=1, max_length=320)


class IdentifierRead(BaseModel):
    id: UUID
    identifier_type: str
    value_normalized: str
    created_at: datetime

    model_config = {"from_attributes": True}
