"""Letter addressing as a sum type.

A letter is addressed by exactly one of:

    UserReference | Email | Phone | PostalAddress | PenPalMatch

Rows store the tag (``Letter.addressing_type``) and the raw input
(``Letter.addressing_value``); ``from_row`` / ``to_row`` convert between the
two so callers branch on types, not strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from slowpost.db.enums import AddressingType, IdentifierType
from slowpost.utils.normalization import normalize_identifier


class InvalidAddressingError(ValueError):
    """Addressing input is malformed or empty."""


@dataclass(frozen=True)
class UserReference:
    username: str


@dataclass(frozen=True)
class Email:
    value: str


@dataclass(frozen=True)
class Phone:
    value: str


@dataclass(frozen=True)
class PostalAddress:
    value: str


@dataclass(frozen=True)
class PenPalMatch:
    user_id: UUID


Addressing = Union[UserReference, Email, Phone, PostalAddress, PenPalMatch]
ContactAddressing = Union[Email, Phone, PostalAddress]

_CONTACT_TYPES: dict[type, IdentifierType] = {
    Email: IdentifierType.EMAIL,
    Phone: IdentifierType.PHONE,
    PostalAddress: IdentifierType.POSTAL_ADDRESS,
}


def identifier_type_for(addressing: ContactAddressing) -> IdentifierType:
    return _CONTACT_TYPES[type(addressing)]


def parse_addressing(addressing_type: AddressingType | str, value: str | None) -> Addressing:
    """
    Build an Addressing from API/DB input.

    Raises:
        InvalidAddressingError: Unknown type, empty value, or a value that
            normalises to nothing (e.g. a phone with no digits).
    """
    try:
        kind = AddressingType(addressing_type)
    except ValueError:
        raise InvalidAddressingError(f"Unknown addressing type: {addressing_type!r}")

    if not isinstance(value, str) or not value.strip():
        raise InvalidAddressingError("Addressing value is required")

    if kind == AddressingType.USER_REFERENCE:
        return UserReference(username=value.strip())
    if kind == AddressingType.PEN_PAL_MATCH:
        try:
            return PenPalMatch(user_id=UUID(value.strip()))
        except ValueError:
            raise InvalidAddressingError("Pen-pal match must reference a user id")

    contact_cls = {
        AddressingType.EMAIL: Email,
        AddressingType.PHONE: Phone,
        AddressingType.POSTAL_ADDRESS: PostalAddress,
    }[kind]
    if normalize_identifier(_CONTACT_TYPES[contact_cls], value) is None:
        raise InvalidAddressingError("Addressing value is empty after normalization")
    return contact_cls(value=value)


def from_row(addressing_type: str, addressing_value: str) -> Addressing:
    return parse_addressing(addressing_type, addressing_value)


def to_row(addressing: Addressing) -> tuple[str, str]:
    """Return (addressing_type, addressing_value) column values."""
    if isinstance(addressing, UserReference):
        return AddressingType.USER_REFERENCE.value, addressing.username
    if isinstance(addressing, Email):
        return AddressingType.EMAIL.value, addressing.value
    if isinstance(addressing, Phone):
        return AddressingType.PHONE.value, addressing.value
    if isinstance(addressing, PostalAddress):
        return AddressingType.POSTAL_ADDRESS.value, addressing.value
    if isinstance(addressing, PenPalMatch):
        return AddressingType.PEN_PAL_MATCH.value, str(addressing.user_id)
    raise TypeError(f"Unsupported addressing: {addressing!r}")
