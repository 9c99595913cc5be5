"""Letter service - drafts, the send transition, and recipient-side actions.

Lifecycle:

    draft → in_transit → delivered | blocked | undeliverable

``send_letter`` owns the only sender-triggered transition. Everything past
in_transit belongs to the delivery sweep.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slowpost.core.clock import Clock, ensure_utc, system_clock
from slowpost.core.config import settings
from slowpost.core.constants import PLACEHOLDER_TIMEZONE
from slowpost.core.rate_limit import RateLimitCapability, RateLimitDecision
from slowpost.core.structured_logging import build_log_context
from slowpost.db.enums import ContentType, LetterStatus, SystemFolderType
from slowpost.db.models import BlockList, Folder, Letter, User
from slowpost.services import folder_service, quota_service, recipient_resolver
from slowpost.services.addressing import (
    Addressing,
    PenPalMatch,
    UserReference,
    from_row,
    to_row,
)
from slowpost.services.user_service import DeletionHoldError
from slowpost.utils.business_hours import compute_scheduled_delivery

logger = logging.getLogger(__name__)


class LetterServiceError(Exception):
    """Base exception for letter errors."""

    pass


class LetterNotFoundError(LetterServiceError):
    pass


class NotLetterSenderError(LetterServiceError):
    """Caller is not the letter's sender."""

    pass


class NotLetterRecipientError(LetterServiceError):
    """Caller is not the letter's recipient."""

    pass


class LetterStateError(LetterServiceError):
    """Letter is not in the status the action requires."""

    pass


class QuotaExceededError(LetterServiceError):
    """Daily send cap reached for the sender's local date."""

    pass


class RateLimitedError(LetterServiceError):
    pass


class SelfBlockError(LetterServiceError):
    pass


class FolderNotFoundError(LetterServiceError):
    pass


# =============================================================================
# Drafts
# =============================================================================

def create_draft(
    db: Session,
    sender: User,
    addressing: Addressing,
    *,
    content_type: ContentType = ContentType.TYPED,
    body: str | None = None,
    in_reply_to_id: UUID | None = None,
) -> Letter:
    """
    Create a draft letter.

    User references and pen-pal matches resolve immediately; contact
    identifiers stay unresolved until send (and then the sweep).

    Raises:
        DeletionHoldError: sender is scheduled for deletion
    """
    if sender.in_deletion_hold:
        raise DeletionHoldError("Account scheduled for deletion.")

    recipient_user_id = None
    if isinstance(addressing, (UserReference, PenPalMatch)):
        resolution = recipient_resolver.resolve(db, addressing)
        if resolution.resolved:
            recipient_user_id = resolution.user.id

    addressing_type, addressing_value = to_row(addressing)
    letter = Letter(
        sender_id=sender.id,
        recipient_user_id=recipient_user_id,
        addressing_type=addressing_type,
        addressing_value=addressing_value,
        status=LetterStatus.DRAFT.value,
        content_type=ContentType(content_type).value,
        body=body,
        in_reply_to_id=in_reply_to_id,
    )
    db.add(letter)
    db.commit()
    db.refresh(letter)
    return letter


# =============================================================================
# Send transition
# =============================================================================

def _consult_rate_limiter(rate_limiter: RateLimitCapability, user_id: UUID) -> None:
    decision = rate_limiter.hit(str(user_id))
    if decision == RateLimitDecision.DENIED:
        raise RateLimitedError("Too many send attempts. Try again later.")
    if decision == RateLimitDecision.UNAVAILABLE:
        if not settings.RATE_LIMIT_FAIL_OPEN:
            raise RateLimitedError("Too many send attempts. Try again later.")
        logger.warning(
            "Send rate limiter unavailable, allowing request",
            extra=build_log_context(user_id=user_id),
        )


def _recipient_for_send(db: Session, letter: Letter) -> User | None:
    """Already-resolved recipient, or one resolution attempt for unresolved drafts."""
    if letter.recipient_user_id is not None:
        return letter.recipient
    resolution = recipient_resolver.resolve(
        db, from_row(letter.addressing_type, letter.addressing_value)
    )
    return resolution.user if resolution.resolved else None


def send_letter(
    db: Session,
    letter_id: UUID,
    user_id: UUID,
    *,
    clock: Clock = system_clock,
    rate_limiter: RateLimitCapability | None = None,
) -> Letter:
    """
    Move a draft to in_transit.

    Status change, schedule, send-time snapshot, and quota charge commit
    together or not at all. The first failing precondition is raised.

    Raises:
        RateLimitedError, LetterNotFoundError, NotLetterSenderError,
        LetterStateError, DeletionHoldError, QuotaExceededError,
        InvalidTimezoneError (stored recipient timezone is not canonical)
    """
    if rate_limiter is not None:
        _consult_rate_limiter(rate_limiter, user_id)

    letter = db.get(Letter, letter_id)
    if not letter:
        raise LetterNotFoundError("Letter not found.")
    if letter.sender_id != user_id:
        raise NotLetterSenderError("Only the sender can send this letter.")
    if letter.status != LetterStatus.DRAFT.value:
        raise LetterStateError("Letter has already been sent.")

    sender = letter.sender
    if sender.in_deletion_hold:
        raise DeletionHoldError("Account scheduled for deletion.")

    now = ensure_utc(clock())
    quota_date = quota_service.sender_local_date(sender.timezone, now)
    if not quota_service.check_quota(db, sender.id, quota_date).allowed:
        raise QuotaExceededError("Daily send limit reached. Try again tomorrow.")

    recipient = _recipient_for_send(db, letter)
    recipient_timezone = recipient.timezone if recipient else PLACEHOLDER_TIMEZONE
    schedule = compute_scheduled_delivery(now, recipient_timezone)

    try:
        result = db.execute(
            update(Letter)
            .where(Letter.id == letter.id, Letter.status == LetterStatus.DRAFT.value)
            .values(
                status=LetterStatus.IN_TRANSIT.value,
                recipient_user_id=recipient.id if recipient else None,
                sent_at=now,
                scheduled_delivery_at=schedule.scheduled_delivery_at,
                sender_region_at_send=sender.region,
                sender_timezone_at_send=sender.timezone,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise LetterStateError("Letter has already been sent.")
        if not quota_service.reserve_send(db, sender.id, quota_date):
            raise QuotaExceededError("Daily send limit reached. Try again tomorrow.")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(letter)
    logger.info(
        "Letter sent, scheduled for %s",
        schedule.scheduled_delivery_at.isoformat(),
        extra=build_log_context(user_id=user_id, letter_id=letter.id),
    )
    return letter


# =============================================================================
# Mailbox
# =============================================================================

def _letters_in_folder(db: Session, user_id: UUID, folder: Folder | None) -> list[Letter]:
    if folder is None:
        return []
    return (
        db.query(Letter)
        .filter(
            Letter.folder_id == folder.id,
            Letter.recipient_user_id == user_id,
            Letter.status == LetterStatus.DELIVERED.value,
        )
        .order_by(Letter.delivered_at.desc())
        .all()
    )


def list_letters(db: Session, user_id: UUID, folder: str) -> list[Letter]:
    """
    List the caller's letters for a folder key.

    ``DRAFTS`` is the sender view and only ever shows drafts. System and
    custom folders are the recipient view and only show delivered letters.
    In-transit letters never appear anywhere.

    Raises:
        FolderNotFoundError: unknown key or a folder the caller doesn't own
    """
    key = (folder or "").strip()
    try:
        system_type = SystemFolderType(key.lower())
    except ValueError:
        system_type = None

    if system_type == SystemFolderType.DRAFTS:
        return (
            db.query(Letter)
            .filter(Letter.sender_id == user_id, Letter.status == LetterStatus.DRAFT.value)
            .order_by(Letter.updated_at.desc())
            .all()
        )
    if system_type is not None:
        return _letters_in_folder(
            db, user_id, folder_service.get_system_folder(db, user_id, system_type)
        )

    try:
        folder_id = UUID(key)
    except ValueError:
        raise FolderNotFoundError("Folder not found.")
    custom = folder_service.get_user_folder(db, user_id, folder_id)
    if custom is None:
        raise FolderNotFoundError("Folder not found.")
    return _letters_in_folder(db, user_id, custom)


def _get_delivered_to(db: Session, letter_id: UUID, user_id: UUID) -> Letter:
    letter = db.get(Letter, letter_id)
    if not letter or letter.status != LetterStatus.DELIVERED.value:
        raise LetterNotFoundError("Letter not found.")
    if letter.recipient_user_id != user_id:
        raise NotLetterRecipientError("Only the recipient can do this.")
    return letter


# =============================================================================
# Recipient actions
# =============================================================================

def create_reply(db: Session, user: User, letter_id: UUID) -> Letter:
    """Start a draft back to the sender of a letter delivered to ``user``."""
    original = _get_delivered_to(db, letter_id, user.id)
    return create_draft(
        db,
        user,
        UserReference(username=original.sender.username),
        in_reply_to_id=original.id,
    )


def tear_open(db: Session, user: User, letter_id: UUID, now: datetime) -> Letter:
    """Mark a delivered letter opened and file it under OPENED. Replays are no-ops."""
    letter = _get_delivered_to(db, letter_id, user.id)
    if letter.opened_at is not None:
        return letter

    opened = folder_service.get_or_create_system_folder(db, user.id, SystemFolderType.OPENED)
    letter.opened_at = ensure_utc(now)
    letter.folder_id = opened.id
    db.commit()
    db.refresh(letter)
    return letter


def is_blocked(db: Session, blocker_user_id: UUID, blocked_user_id: UUID) -> bool:
    return (
        db.query(BlockList.id)
        .filter(
            BlockList.blocker_user_id == blocker_user_id,
            BlockList.blocked_user_id == blocked_user_id,
        )
        .first()
        is not None
    )


def block_sender(db: Session, user: User, letter_id: UUID) -> BlockList | None:
    """
    Block the sender of a letter delivered to ``user``.

    Idempotent. Only affects letters finalized after this point; the sender
    is never told.

    Raises:
        SelfBlockError: the letter was sent by ``user``
    """
    letter = _get_delivered_to(db, letter_id, user.id)
    if letter.sender_id == user.id:
        raise SelfBlockError("You cannot block yourself.")
    if is_blocked(db, user.id, letter.sender_id):
        return None

    entry = BlockList(blocker_user_id=user.id, blocked_user_id=letter.sender_id)
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent block of the same pair
        db.rollback()
        return None
    db.refresh(entry)
    return entry
