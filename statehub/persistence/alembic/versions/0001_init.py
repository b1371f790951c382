"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("external_access_token", sa.String(), nullable=True),
        sa.Column("credential", sa.String(), nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False, server_default="500"),
        sa.Column("suspended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    op.create_table(
        "account_audit_entries",
        sa.Column("account_id", sa.String(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("justification", sa.Text(), nullable=False),
        sa.Column("executor", sa.String(), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=True),
        sa.Column("credential", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        # The composite key rejects a second writer claiming the same sequence.
        sa.PrimaryKeyConstraint("account_id", "sequence", name="pk_account_audit_entries"),
    )

    op.create_table(
        "broadcast_notifications",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("classification", sa.String(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_broadcast_notifications_created_at", "broadcast_notifications", ["created_at"]
    )

    op.create_table(
        "private_notifications",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("classification", sa.String(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_private_notifications_owner_id", "private_notifications", ["owner_id"])
    op.create_index(
        "ix_private_notifications_owner_deleted", "private_notifications", ["owner_id", "deleted"]
    )

    op.create_table(
        "notification_overlays",
        sa.Column("account_id", sa.String(), nullable=False),
        sa.Column("notification_id", sa.String(), nullable=False),
        sa.Column("effect", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint(
            "account_id", "notification_id", "effect", name="pk_notification_overlays"
        ),
    )


def downgrade() -> None:
    op.drop_table("notification_overlays")
    op.drop_index("ix_private_notifications_owner_deleted", table_name="private_notifications")
    op.drop_index("ix_private_notifications_owner_id", table_name="private_notifications")
    op.drop_table("private_notifications")
    op.drop_index("ix_broadcast_notifications_created_at", table_name="broadcast_notifications")
    op.drop_table("broadcast_notifications")
    op.drop_table("account_audit_entries")
    op.drop_table("accounts")
