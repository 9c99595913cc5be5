"""Recipient resolution: addressing input → account.

The three-way outcome (found / not found / found but not discoverable) is
for the sweep's own bookkeeping and logs. It must never reach a
sender-visible response; callers on the request path only ever answer with
the generic lookup message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from slowpost.db.models import User, UserIdentifier
from slowpost.services.addressing import (
    Addressing,
    Email,
    PenPalMatch,
    Phone,
    PostalAddress,
    UserReference,
    identifier_type_for,
)
from slowpost.utils.normalization import normalize_identifier, normalize_username

logger = logging.getLogger(__name__)


class ResolutionOutcome(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    NOT_DISCOVERABLE = "not_discoverable"


@dataclass(frozen=True)
class Resolution:
    outcome: ResolutionOutcome
    user: User | None = None

    @property
    def resolved(self) -> bool:
        return self.outcome == ResolutionOutcome.FOUND


NOT_FOUND = Resolution(ResolutionOutcome.NOT_FOUND)


def get_user_by_username(db: Session, username: str) -> User | None:
    normalized = normalize_username(username)
    if not normalized:
        return None
    return db.query(User).filter(User.username == normalized).first()


def _resolve_contact(db: Session, addressing: Email | Phone | PostalAddress) -> Resolution:
    identifier_type = identifier_type_for(addressing)
    normalized = normalize_identifier(identifier_type, addressing.value)
    if not normalized:
        return NOT_FOUND

    identifier = (
        db.query(UserIdentifier)
        .filter(
            UserIdentifier.identifier_type == identifier_type.value,
            UserIdentifier.value_normalized == normalized,
        )
        .first()
    )
    if not identifier:
        return NOT_FOUND
    if not identifier.user.is_discoverable_by(identifier_type):
        return Resolution(ResolutionOutcome.NOT_DISCOVERABLE)
    return Resolution(ResolutionOutcome.FOUND, identifier.user)


def resolve(db: Session, addressing: Addressing) -> Resolution:
    """
    Map an addressing input to an account.

    User references and pen-pal matches are direct lookups with no
    discoverability check; contact identifiers additionally require the
    owner's opt-in for that identifier type.
    """
    if isinstance(addressing, UserReference):
        user = get_user_by_username(db, addressing.username)
        return Resolution(ResolutionOutcome.FOUND, user) if user else NOT_FOUND
    if isinstance(addressing, PenPalMatch):
        user = db.get(User, addressing.user_id)
        return Resolution(ResolutionOutcome.FOUND, user) if user else NOT_FOUND
    if isinstance(addressing, (Email, Phone, PostalAddress)):
        return _resolve_contact(db, addressing)
    raise TypeError(f"Unsupported addressing: {addressing!r}")
