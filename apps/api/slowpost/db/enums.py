"""Enum definitions for application constants."""

from enum import Enum


class LetterStatus(str, Enum):
    """
    Letter lifecycle.

        draft → in_transit → delivered | blocked | undeliverable

    Only draft → in_transit is triggered by the sender; every other
    transition belongs to the delivery sweep and is terminal.
    """
    DRAFT = "draft"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    BLOCKED = "blocked"
    UNDELIVERABLE = "undeliverable"


class AddressingType(str, Enum):
    """How the sender addressed a letter."""
    USER_REFERENCE = "user_reference"  # Username
    EMAIL = "email"
    PHONE = "phone"
    POSTAL_ADDRESS = "postal_address"
    PEN_PAL_MATCH = "pen_pal_match"


class IdentifierType(str, Enum):
    """Contact identifiers a user can register for discovery."""
    EMAIL = "email"
    PHONE = "phone"
    POSTAL_ADDRESS = "postal_address"


class ContentType(str, Enum):
    TYPED = "typed"
    HANDWRITTEN = "handwritten"
    VOICE = "voice"


class SystemFolderType(str, Enum):
    """Folders every account owns."""
    UNOPENED = "unopened"
    OPENED = "opened"
    DRAFTS = "drafts"


DEFAULT_LETTER_STATUS = LetterStatus.DRAFT
DEFAULT_CONTENT_TYPE = ContentType.TYPED
