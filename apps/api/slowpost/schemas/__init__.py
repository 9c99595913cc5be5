"""Pydantic schemas for API request/response models."""

from slowpost.schemas.letter import DraftRead, LetterActionResponse, LetterCreate, LetterRead
from slowpost.schemas.lookup import LookupRequest, LookupResponse
from slowpost.schemas.user import IdentifierCreate, IdentifierRead, MeRead, ProfileUpdate

__all__ = [
    # Letters
    "LetterCreate",
    "DraftRead",
    "LetterRead",
    "LetterActionResponse",
    # Lookup
    "LookupRequest",
    "LookupResponse",
    # Account
    "MeRead",
    "IdentifierCreate",
    "IdentifierRead",
    "ProfileUpdate",
]
