"""Service layer modules."""

from slowpost.services.addressing import (
    Addressing,
    Email,
    InvalidAddressingError,
    PenPalMatch,
    Phone,
    PostalAddress,
    UserReference,
    parse_addressing,
)
from slowpost.services.recipient_resolver import Resolution, ResolutionOutcome, resolve
from slowpost.services.user_service import (
    DeletionHoldError,
    create_user,
    get_user,
)

# Import service modules (not individual functions) for cleaner access
from slowpost.services import folder_service
from slowpost.services import quota_service
from slowpost.services import user_service
from slowpost.services import letter_service
from slowpost.services import delivery_sweep

__all__ = [
    # Addressing
    "Addressing",
    "UserReference",
    "Email",
    "Phone",
    "PostalAddress",
    "PenPalMatch",
    "InvalidAddressingError",
    "parse_addressing",
    # Resolution
    "Resolution",
    "ResolutionOutcome",
    "resolve",
    # Accounts
    "DeletionHoldError",
    "create_user",
    "get_user",
    # Modules
    "folder_service",
    "quota_service",
    "user_service",
    "letter_service",
    "delivery_sweep",
]
