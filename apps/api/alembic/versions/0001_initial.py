"""Initial schema - accounts, letters, folders, quotas, block list

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-17

All instants are TIMESTAMPTZ and written as UTC.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Accounts
    # ==========================================================================
    op.execute('''
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            username VARCHAR(20) UNIQUE NOT NULL,
            region VARCHAR(100) NOT NULL,
            timezone VARCHAR(64) NOT NULL,
            discoverable_by_email BOOLEAN NOT NULL DEFAULT false,
            discoverable_by_phone BOOLEAN NOT NULL DEFAULT false,
            discoverable_by_address BOOLEAN NOT NULL DEFAULT false,
            marked_for_deletion_at TIMESTAMPTZ,
            token_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE user_identifiers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            identifier_type VARCHAR(20) NOT NULL,
            value_normalized VARCHAR(320) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_user_identifiers_type_value UNIQUE (identifier_type, value_normalized)
        )
    ''')
    op.execute('CREATE INDEX idx_user_identifiers_user ON user_identifiers(user_id)')

    op.execute('''
        CREATE TABLE folders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(100) NOT NULL,
            system_type VARCHAR(20),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_folders_user_system_type UNIQUE (user_id, system_type)
        )
    ''')

    # ==========================================================================
    # Letters
    # ==========================================================================
    op.execute('''
        CREATE TABLE letters (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            sender_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            recipient_user_id UUID REFERENCES users(id) ON DELETE CASCADE,
            addressing_type VARCHAR(20) NOT NULL,
            addressing_value VARCHAR(500) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'draft',
            content_type VARCHAR(20) NOT NULL DEFAULT 'typed',
            body TEXT,
            in_reply_to_id UUID REFERENCES letters(id) ON DELETE SET NULL,
            folder_id UUID REFERENCES folders(id) ON DELETE SET NULL,
            sender_region_at_send VARCHAR(100),
            sender_timezone_at_send VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            sent_at TIMESTAMPTZ,
            scheduled_delivery_at TIMESTAMPTZ,
            delivered_at TIMESTAMPTZ,
            opened_at TIMESTAMPTZ,
            CONSTRAINT ck_letters_scheduled_iff_sent CHECK (
                (status = 'draft') = (scheduled_delivery_at IS NULL)
            )
        )
    ''')
    op.execute('CREATE INDEX idx_letters_status_scheduled ON letters(status, scheduled_delivery_at)')
    op.execute('CREATE INDEX idx_letters_sender_status ON letters(sender_id, status)')
    op.execute('CREATE INDEX idx_letters_recipient_status ON letters(recipient_user_id, status)')

    # ==========================================================================
    # Delivery bookkeeping
    # ==========================================================================
    op.execute('''
        CREATE TABLE daily_quotas (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            quota_date DATE NOT NULL,
            sent_count INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT uq_daily_quotas_user_date UNIQUE (user_id, quota_date)
        )
    ''')

    op.execute('''
        CREATE TABLE block_list (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            blocker_user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            blocked_user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_block_list_pair UNIQUE (blocker_user_id, blocked_user_id)
        )
    ''')


def downgrade() -> None:
    """Drop all tables."""
    op.execute('DROP TABLE IF EXISTS block_list CASCADE')
    op.execute('DROP TABLE IF EXISTS daily_quotas CASCADE')
    op.execute('DROP TABLE IF EXISTS letters CASCADE')
    op.execute('DROP TABLE IF EXISTS folders CASCADE')
    op.execute('DROP TABLE IF EXISTS user_identifiers CASCADE')
    op.execute('DROP TABLE IF EXISTS users CASCADE')
