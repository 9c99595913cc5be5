"""Identifier normalization shared by registration, lookup, and routing.

Stored identifiers and addressing inputs must go through the same function,
otherwise a letter addressed to "Ann@Example.com " would never match the
identifier registered as "ann@example.com".
"""

import re
from typing import Optional

from slowpost.db.enums import IdentifierType

USERNAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]{2,19}$")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trim and lowercase an email address."""
    if not email:
        return None
    normalized = email.strip().lower()
    return normalized or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Keep digits only.

    No country-code inference: "+1 (555) 123-4567" and "15551234567" are the
    same number, "5551234567" is a different one.
    """
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    return digits or None


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Lowercase and collapse every whitespace run to a single space."""
    if not address:
        return None
    normalized = re.sub(r"\s+", " ", address.lower()).strip()
    return normalized or None


def normalize_username(username: Optional[str]) -> Optional[str]:
    if not username:
        return None
    normalized = username.strip().lower()
    return normalized or None


def is_valid_username(username: str) -> bool:
    """3-20 chars, starts with a letter, then lowercase letters, digits, _ or -."""
    return bool(USERNAME_PATTERN.match(username))


_NORMALIZERS = {
    IdentifierType.EMAIL: normalize_email,
    IdentifierType.PHONE: normalize_phone,
    IdentifierType.POSTAL_ADDRESS: normalize_address,
}


def normalize_identifier(identifier_type: IdentifierType, value: Optional[str]) -> Optional[str]:
    """Normalize ``value`` for ``identifier_type``; None when nothing usable remains."""
    return _NORMALIZERS[IdentifierType(identifier_type)](value)
