"""Account service: creation, contact identifiers, and the deletion hold."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slowpost.core.config import settings
from slowpost.db.enums import IdentifierType
from slowpost.db.models import User, UserIdentifier
from slowpost.services import folder_service
from slowpost.utils.normalization import (
    is_valid_username,
    normalize_identifier,
    normalize_username,
)
from slowpost.utils.timezones import InvalidTimezoneError, is_valid_timezone

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for account errors."""

    pass


class InvalidUsernameError(UserServiceError):
    """Username does not match the allowed format."""

    pass


class UsernameTakenError(UserServiceError):
    """Username already belongs to another account."""

    pass


class InvalidIdentifierError(UserServiceError):
    """Identifier value is empty after normalization."""

    pass


class IdentifierTakenError(UserServiceError):
    """(type, normalized value) already registered by some account."""

    pass


class DeletionHoldError(UserServiceError):
    """Account is scheduled for deletion; the action is suspended."""

    pass


class IdentifierNotFoundError(UserServiceError):
    """No such identifier on this account."""

    pass


# =============================================================================
# Accounts
# =============================================================================

def create_user(
    db: Session,
    *,
    username: str,
    region: str,
    timezone: str,
    discoverable_by_email: bool = False,
    discoverable_by_phone: bool = False,
    discoverable_by_address: bool = False,
) -> User:
    """
    Create an account and seed its system folders.

    Raises:
        InvalidUsernameError, UsernameTakenError, InvalidTimezoneError
    """
    normalized = normalize_username(username) or ""
    if not is_valid_username(normalized):
        raise InvalidUsernameError(
            "Username must be 3-20 characters, start with a letter, and use "
            "lowercase letters, digits, underscores or hyphens."
        )
    if not is_valid_timezone(timezone):
        raise InvalidTimezoneError(timezone)
    region = region.strip()
    if not region:
        raise UserServiceError("Region is required.")

    user = User(
        username=normalized,
        region=region,
        timezone=timezone,
        discoverable_by_email=discoverable_by_email,
        discoverable_by_phone=discoverable_by_phone,
        discoverable_by_address=discoverable_by_address,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise UsernameTakenError(f"Username '{normalized}' is already taken.")

    folder_service.seed_system_folders(db, user.id)
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: UUID) -> User | None:
    return db.get(User, user_id)


def update_profile(
    db: Session,
    user: User,
    *,
    region: str | None = None,
    timezone: str | None = None,
    discoverable_by_email: bool | None = None,
    discoverable_by_phone: bool | None = None,
    discoverable_by_address: bool | None = None,
) -> User:
    """
    Patch profile fields. ``None`` leaves a field unchanged.

    Letters already sent keep the region and timezone captured at send.

    Raises:
        DeletionHoldError, InvalidTimezoneError, UserServiceError (empty region)
    """
    if user.in_deletion_hold:
        raise DeletionHoldError("Account scheduled for deletion.")
    if timezone is not None and not is_valid_timezone(timezone):
        raise InvalidTimezoneError(timezone)
    if region is not None:
        region = region.strip()
        if not region:
            raise UserServiceError("Region is required.")
        user.region = region
    if timezone is not None:
        user.timezone = timezone
    if discoverable_by_email is not None:
        user.discoverable_by_email = discoverable_by_email
    if discoverable_by_phone is not None:
        user.discoverable_by_phone = discoverable_by_phone
    if discoverable_by_address is not None:
        user.discoverable_by_address = discoverable_by_address

    db.commit()
    db.refresh(user)
    return user


# =============================================================================
# Identifiers
# =============================================================================

def list_identifiers(db: Session, user_id: UUID) -> list[UserIdentifier]:
    return (
        db.query(UserIdentifier)
        .filter(UserIdentifier.user_id == user_id)
        .order_by(UserIdentifier.created_at.asc())
        .all()
    )


def add_identifier(
    db: Session,
    user: User,
    identifier_type: IdentifierType,
    value: str,
) -> UserIdentifier:
    """
    Register a contact identifier, stored normalized.

    Raises:
        DeletionHoldError: account is scheduled for deletion
        InvalidIdentifierError: nothing left after normalization
        IdentifierTakenError: already registered (by anyone)
    """
    if user.in_deletion_hold:
        raise DeletionHoldError("Account scheduled for deletion.")

    normalized = normalize_identifier(identifier_type, value)
    if not normalized:
        raise InvalidIdentifierError("Identifier value is invalid after normalization.")

    identifier = UserIdentifier(
        user_id=user.id,
        identifier_type=IdentifierType(identifier_type).value,
        value_normalized=normalized,
    )
    db.add(identifier)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise IdentifierTakenError("This identifier is already registered.")
    db.refresh(identifier)
    return identifier


def remove_identifier(db: Session, user: User, identifier_id: UUID) -> None:
    """
    Delete one of the user's identifiers. Letters already routed are unaffected.

    Raises:
        DeletionHoldError, IdentifierNotFoundError (missing or not owned)
    """
    if user.in_deletion_hold:
        raise DeletionHoldError("Account scheduled for deletion.")
    identifier = (
        db.query(UserIdentifier)
        .filter(UserIdentifier.id == identifier_id, UserIdentifier.user_id == user.id)
        .first()
    )
    if identifier is None:
        raise IdentifierNotFoundError("Identifier not found.")
    db.delete(identifier)
    db.commit()


# =============================================================================
# Deletion hold
# =============================================================================

def mark_for_deletion(db: Session, user: User, now: datetime) -> User:
    """Start the grace period. Idempotent: an existing hold keeps its start time."""
    if user.marked_for_deletion_at is None:
        user.marked_for_deletion_at = now
        db.commit()
        logger.info("Account %s marked for deletion", user.id)
    return user


def cancel_deletion(db: Session, user: User) -> User:
    if user.marked_for_deletion_at is not None:
        user.marked_for_deletion_at = None
        db.commit()
        logger.info("Account %s deletion cancelled", user.id)
    return user


def purge_expired_accounts(db: Session, now: datetime, grace_days: int | None = None) -> tuple[int, int]:
    """
    Delete accounts whose deletion hold is older than the grace period.

    Identifiers, folders, quotas, block entries, and letters sent or
    received go with the account. Each account is its own transaction.

    Returns:
        (deleted, errors)
    """
    grace_days = settings.DELETION_GRACE_DAYS if grace_days is None else grace_days
    cutoff = now - timedelta(days=grace_days)
    user_ids = [
        row.id
        for row in db.query(User.id).filter(User.marked_for_deletion_at <= cutoff).all()
    ]

    deleted = 0
    errors = 0
    for user_id in user_ids:
        try:
            user = db.get(User, user_id)
            if user is None or user.marked_for_deletion_at is None:
                continue  # Purged or cancelled since the query
            db.delete(user)
            db.commit()
            deleted += 1
        except Exception:
            db.rollback()
            errors += 1
            logger.exception("Failed to purge account %s", user_id)

    if deleted:
        logger.info("Purged %s account(s) past the deletion grace period", deleted)
    return deleted, errors
