"""SQLAlchemy ORM models for accounts, letters, and delivery bookkeeping."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slowpost.db.base import Base
from slowpost.db.enums import (
    DEFAULT_CONTENT_TYPE, DEFAULT_LETTER_STATUS, IdentifierType
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Accounts
# =============================================================================

class User(Base):
    """
    Application account.

    Authentication lives elsewhere; this row carries what delivery needs:
    the timezone deliveries are scheduled in, per-identifier discoverability
    opt-ins, and the deletion hold.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)  # Stored lowercase
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)  # IANA name

    # Discovery opt-ins, one per identifier type
    discoverable_by_email: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discoverable_by_phone: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discoverable_by_address: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Deletion hold: set when the user asks to delete, purged after the grace period
    marked_for_deletion_at: Mapped[datetime | None] = mapped_column(nullable=True)

    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    identifiers: Mapped[list["UserIdentifier"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    folders: Mapped[list["Folder"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    daily_quotas: Mapped[list["DailyQuota"]] = relationship(
        cascade="all, delete-orphan",
    )
    sent_letters: Mapped[list["Letter"]] = relationship(
        back_populates="sender",
        foreign_keys="Letter.sender_id",
        cascade="all, delete",
    )
    received_letters: Mapped[list["Letter"]] = relationship(
        back_populates="recipient",
        foreign_keys="Letter.recipient_user_id",
        cascade="all, delete",
    )
    blocks: Mapped[list["BlockList"]] = relationship(
        foreign_keys="BlockList.blocker_user_id",
        cascade="all, delete-orphan",
    )
    blocked_by: Mapped[list["BlockList"]] = relationship(
        foreign_keys="BlockList.blocked_user_id",
        cascade="all, delete-orphan",
    )

    @property
    def in_deletion_hold(self) -> bool:
        return self.marked_for_deletion_at is not None

    def is_discoverable_by(self, identifier_type: IdentifierType) -> bool:
        if identifier_type == IdentifierType.EMAIL:
            return self.discoverable_by_email
        if identifier_type == IdentifierType.PHONE:
            return self.discoverable_by_phone
        if identifier_type == IdentifierType.POSTAL_ADDRESS:
            return self.discoverable_by_address
        raise ValueError(f"Unknown identifier type: {identifier_type}")


class UserIdentifier(Base):
    """
    Contact identifier (email, phone, postal address) used for routing.

    Values are stored normalised; (identifier_type, value_normalized) is
    globally unique so two accounts can never claim the same address.
    """
    __tablename__ = "user_identifiers"
    __table_args__ = (
        UniqueConstraint(
            "identifier_type", "value_normalized", name="uq_user_identifiers_type_value"
        ),
        Index("idx_user_identifiers_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    identifier_type: Mapped[str] = mapped_column(String(20), nullable=False)
    value_normalized: Mapped[str] = mapped_column(String(320), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="identifiers")


class Folder(Base):
    """Mailbox folder. System folders carry a system_type; custom ones don't."""
    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("user_id", "system_type", name="uq_folders_user_system_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    system_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="folders")


# =============================================================================
# Letters
# =============================================================================

class Letter(Base):
    """
    A letter and its delivery state.

    scheduled_delivery_at is set exactly when status is in_transit or later.
    The addressing input is kept verbatim after resolution so late routing
    and audits can replay it. sender_*_at_send is a snapshot taken at send
    time and never rewritten.
    """
    __tablename__ = "letters"
    __table_args__ = (
        Index("idx_letters_status_scheduled", "status", "scheduled_delivery_at"),
        Index("idx_letters_sender_status", "sender_id", "status"),
        Index("idx_letters_recipient_status", "recipient_user_id", "status"),
        CheckConstraint(
            "(status = 'draft') = (scheduled_delivery_at IS NULL)",
            name="ck_letters_scheduled_iff_sent",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )

    addressing_type: Mapped[str] = mapped_column(String(20), nullable=False)
    addressing_value: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_LETTER_STATUS.value, nullable=False
    )
    content_type: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_CONTENT_TYPE.value, nullable=False
    )
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    in_reply_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("letters.id", ondelete="SET NULL"), nullable=True
    )
    folder_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True
    )

    # Send-time snapshot
    sender_region_at_send: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sender_timezone_at_send: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow, nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    scheduled_delivery_at: Mapped[datetime | None] = mapped_column(nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    opened_at: Mapped[datetime | None] = mapped_column(nullable=True)

    sender: Mapped["User"] = relationship(
        back_populates="sent_letters", foreign_keys=[sender_id]
    )
    recipient: Mapped["User | None"] = relationship(
        back_populates="received_letters", foreign_keys=[recipient_user_id]
    )


# =============================================================================
# Delivery bookkeeping
# =============================================================================

class DailyQuota(Base):
    """
    Sends per sender per sender-local calendar day.

    Created on the first send of a local day and only ever incremented.
    """
    __tablename__ = "daily_quotas"
    __table_args__ = (
        UniqueConstraint("user_id", "quota_date", name="uq_daily_quotas_user_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    quota_date: Mapped[date] = mapped_column(Date, nullable=False)
    sent_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class BlockList(Base):
    """
    Directed block: blocker never receives letters from blocked.

    Consulted only when a letter is finalised, never at send time.
    """
    __tablename__ = "block_list"
    __table_args__ = (
        UniqueConstraint("blocker_user_id", "blocked_user_id", name="uq_block_list_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    blocker_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blocked_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
