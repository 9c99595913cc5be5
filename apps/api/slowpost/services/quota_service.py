"""Daily send quota, keyed by the sender's own local calendar date.

Two steps, on purpose:
- ``check_quota`` is a cheap read before the expensive part of a send;
- ``reserve_send`` is the authoritative, race-free increment and must run
  in the same transaction as the letter's status change.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from slowpost.core.clock import ensure_utc
from slowpost.core.config import settings
from slowpost.db.models import DailyQuota
from slowpost.utils.timezones import get_zone


@dataclass(frozen=True)
class QuotaCheck:
    allowed: bool
    sent_count: int
    limit: int


def sender_local_date(sender_timezone: str, now: datetime) -> date:
    """Calendar date at ``now`` in the sender's timezone (not the server's or recipient's)."""
    return ensure_utc(now).astimezone(get_zone(sender_timezone)).date()


def get_sent_count(db: Session, user_id: UUID, quota_date: date) -> int:
    row = (
        db.query(DailyQuota)
        .filter(DailyQuota.user_id == user_id, DailyQuota.quota_date == quota_date)
        .first()
    )
    return row.sent_count if row else 0


def check_quota(
    db: Session,
    user_id: UUID,
    quota_date: date,
    limit: int | None = None,
) -> QuotaCheck:
    """Advisory read; does not reserve anything."""
    limit = settings.DAILY_SEND_LIMIT if limit is None else limit
    sent_count = get_sent_count(db, user_id, quota_date)
    return QuotaCheck(allowed=sent_count < limit, sent_count=sent_count, limit=limit)


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Quota upsert not supported on dialect {dialect!r}")
    return insert


def reserve_send(
    db: Session,
    user_id: UUID,
    quota_date: date,
    limit: int | None = None,
) -> bool:
    """
    Atomically charge one send against (user, date) if still under ``limit``.

    Single upsert: creates the row on the first send of the day, otherwise
    increments only while sent_count < limit. Two concurrent sends can never
    both take the last slot. Does not commit.

    Returns:
        True if the send was charged, False if the cap was already reached.
    """
    limit = settings.DAILY_SEND_LIMIT if limit is None else limit
    if limit <= 0:
        return False

    insert = _dialect_insert(db)
    stmt = insert(DailyQuota).values(
        id=uuid.uuid4(),
        user_id=user_id,
        quota_date=quota_date,
        sent_count=1,
    ).on_conflict_do_update(
        index_elements=["user_id", "quota_date"],
        set_={"sent_count": DailyQuota.sent_count + 1},
        where=DailyQuota.sent_count < limit,
    )
    result = db.execute(stmt)
    return result.rowcount == 1
