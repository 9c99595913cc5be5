"""
Delivery sweep - the periodic job that moves letters out of in_transit.

Passes, in order:
0. Purge accounts past the deletion grace period.
1. Expire: unresolved letters older than UNDELIVERABLE_AFTER_DAYS → undeliverable.
2. Re-route: retry resolution for the rest; on success set the recipient and
   recompute the schedule from now.
3. Finalize: due letters with a recipient → blocked or delivered.

Every status write is conditional on the letter still being in_transit, so
a second (or overlapping) run finds nothing left to do. A failure on one
letter is logged and rolled back; the letter is retried on the next run.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from slowpost.core.clock import Clock, ensure_utc, system_clock
from slowpost.core.config import settings
from slowpost.core.structured_logging import build_log_context
from slowpost.db.enums import LetterStatus, SystemFolderType
from slowpost.db.models import Letter
from slowpost.services import folder_service, letter_service, recipient_resolver, user_service
from slowpost.services.addressing import from_row
from slowpost.utils.business_hours import compute_scheduled_delivery

logger = logging.getLogger(__name__)

IN_TRANSIT = LetterStatus.IN_TRANSIT.value


@dataclass
class SweepSummary:
    deleted: int = 0
    undeliverable: int = 0
    rerouted: int = 0
    delivered: int = 0
    blocked: int = 0
    errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _transition(db: Session, letter_id: UUID, **values) -> bool:
    """Conditional in_transit → ``values`` write. False if someone got there first."""
    result = db.execute(
        update(Letter)
        .where(Letter.id == letter_id, Letter.status == IN_TRANSIT)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# =============================================================================
# Pass 1: expire
# =============================================================================

def expire_unresolved(db: Session, now: datetime) -> int:
    cutoff = now - timedelta(days=settings.UNDELIVERABLE_AFTER_DAYS)
    result = db.execute(
        update(Letter)
        .where(
            Letter.status == IN_TRANSIT,
            Letter.recipient_user_id.is_(None),
            Letter.sent_at <= cutoff,
        )
        .values(status=LetterStatus.UNDELIVERABLE.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


# =============================================================================
# Pass 2: re-route
# =============================================================================

def reroute_letter(db: Session, letter: Letter, now: datetime) -> bool:
    """
    One resolution attempt for an unresolved letter.

    Recipient and recomputed schedule are written together. The schedule
    is computed from ``now``, not the original sent_at.
    """
    resolution = recipient_resolver.resolve(
        db, from_row(letter.addressing_type, letter.addressing_value)
    )
    if not resolution.resolved:
        logger.debug(
            "Letter still unresolved (%s)",
            resolution.outcome.value,
            extra=build_log_context(letter_id=letter.id),
        )
        return False

    recipient = resolution.user
    schedule = compute_scheduled_delivery(now, recipient.timezone)
    result = db.execute(
        update(Letter)
        .where(
            Letter.id == letter.id,
            Letter.status == IN_TRANSIT,
            Letter.recipient_user_id.is_(None),
        )
        .values(
            recipient_user_id=recipient.id,
            scheduled_delivery_at=schedule.scheduled_delivery_at,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        return False
    db.commit()
    return True


def reroute_unresolved(db: Session, now: datetime, summary: SweepSummary) -> None:
    cutoff = now - timedelta(days=settings.UNDELIVERABLE_AFTER_DAYS)
    letter_ids = [
        row.id
        for row in db.query(Letter.id).filter(
            Letter.status == IN_TRANSIT,
            Letter.recipient_user_id.is_(None),
            Letter.sent_at > cutoff,
        )
    ]
    for letter_id in letter_ids:
        try:
            letter = db.get(Letter, letter_id)
            if letter is None or letter.status != IN_TRANSIT:
                continue
            if reroute_letter(db, letter, now):
                summary.rerouted += 1
        except Exception:
            db.rollback()
            summary.errors += 1
            logger.exception(
                "Failed to re-route letter", extra=build_log_context(letter_id=letter_id)
            )


# =============================================================================
# Pass 3: finalize
# =============================================================================

def finalize_letter(db: Session, letter: Letter, now: datetime) -> LetterStatus | None:
    """
    Deliver or block one due letter.

    Returns the new status, or None when another run already finalized it.
    The sender is never told about a block.
    """
    if letter_service.is_blocked(db, letter.recipient_user_id, letter.sender_id):
        if not _transition(db, letter.id, status=LetterStatus.BLOCKED.value, updated_at=now):
            db.rollback()
            return None
        db.commit()
        return LetterStatus.BLOCKED

    unopened = folder_service.get_or_create_system_folder(
        db, letter.recipient_user_id, SystemFolderType.UNOPENED
    )
    if not _transition(
        db,
        letter.id,
        status=LetterStatus.DELIVERED.value,
        delivered_at=now,
        folder_id=unopened.id,
        updated_at=now,
    ):
        db.rollback()
        return None
    db.commit()
    return LetterStatus.DELIVERED


def finalize_due(db: Session, now: datetime, summary: SweepSummary) -> None:
    letter_ids = [
        row.id
        for row in db.query(Letter.id)
        .filter(
            Letter.status == IN_TRANSIT,
            Letter.recipient_user_id.is_not(None),
            Letter.scheduled_delivery_at <= now,
        )
        .order_by(Letter.scheduled_delivery_at.asc())
    ]
    for letter_id in letter_ids:
        try:
            letter = db.get(Letter, letter_id)
            if letter is None or letter.status != IN_TRANSIT:
                continue
            outcome = finalize_letter(db, letter, now)
        except Exception:
            db.rollback()
            summary.errors += 1
            logger.exception(
                "Failed to finalize letter", extra=build_log_context(letter_id=letter_id)
            )
            continue
        if outcome == LetterStatus.DELIVERED:
            summary.delivered += 1
        elif outcome == LetterStatus.BLOCKED:
            summary.blocked += 1


# =============================================================================
# Entry point
# =============================================================================

def run_sweep(db: Session, *, clock: Clock = system_clock) -> SweepSummary:
    """
    Run every pass once. Safe to call repeatedly or concurrently.

    Returns counts of what this run changed.
    """
    now = ensure_utc(clock())
    summary = SweepSummary()

    deleted, purge_errors = user_service.purge_expired_accounts(db, now)
    summary.deleted = deleted
    summary.errors += purge_errors

    try:
        summary.undeliverable = expire_unresolved(db, now)
    except Exception:
        db.rollback()
        summary.errors += 1
        logger.exception("Failed to expire unresolved letters")

    reroute_unresolved(db, now, summary)
    finalize_due(db, now, summary)

    logger.info(
        "Delivery sweep complete: deleted=%s undeliverable=%s rerouted=%s "
        "delivered=%s blocked=%s errors=%s",
        summary.deleted,
        summary.undeliverable,
        summary.rerouted,
        summary.delivered,
        summary.blocked,
        summary.errors,
    )
    return summary
