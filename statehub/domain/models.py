from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    # Identities come from the upstream identity allocator; never generated here.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String)
    # Opaque token issued by the upstream identity provider.
    external_access_token: Mapped[str | None] = mapped_column(String, nullable=True)
    credential: Mapped[str] = mapped_column(String)
    # Request quota; the check constraint backs the service-level invariant.
    balance: Mapped[int] = mapped_column(BigInteger, default=500, nullable=False)
    suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Bumped on every write; conditional updates key on it.
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class AccountAuditEntry(Base):
    __tablename__ = "account_audit_entries"

    # Composite key makes a duplicate sequence for one account impossible.
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    kind: Mapped[str] = mapped_column(String)
    justification: Mapped[str] = mapped_column(Text)
    executor: Mapped[str] = mapped_column(String)
    # Signed balance delta for credit/debit entries.
    quantity: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # New credential value for rotate-credential entries.
    credential: Mapped[str | None] = mapped_column(String, nullable=True)
    # Optional expiry carried by suspend/reinstate entries.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class BroadcastNotification(Base):
    __tablename__ = "broadcast_notifications"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    classification: Mapped[str] = mapped_column(String)
    body: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    # Eligible for external garbage collection after this point; not enforced here.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PrivateNotification(Base):
    __tablename__ = "private_notifications"
    __table_args__ = (
        Index("ix_private_notifications_owner_deleted", "owner_id", "deleted"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String, index=True)
    classification: Mapped[str] = mapped_column(String)
    body: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Soft delete; rows are never physically removed by this service.
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class NotificationOverlayEntry(Base):
    __tablename__ = "notification_overlays"

    # One row per (account, broadcast id, effect) keeps overlay membership a key lookup.
    account_id: Mapped[str] = mapped_column(String, primary_key=True)
    notification_id: Mapped[str] = mapped_column(String, primary_key=True)
    effect: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
