from __future__ import annotations

from typing import Protocol

from statehub.domain.accounts import AccountChanges, AccountSnapshot, AuditEntry
from statehub.domain.notifications import BroadcastNotice, MarkEffect, OverlaySets, PrivateNotice


class AccountStore(Protocol):
    async def get(self, account_id: str) -> AccountSnapshot | None: ...

    async def create(self, snapshot: AccountSnapshot) -> AccountSnapshot:
        """Insert a new account; raises ConflictError if the id is taken."""
        ...

    async def commit_action(
        self,
        snapshot: AccountSnapshot,
        changes: AccountChanges,
        entry: AuditEntry,
    ) -> AccountSnapshot:
        """Apply changes and append entry atomically, keyed on snapshot.version.

        Raises ConflictError when the stored version no longer matches.
        """
        ...

    async def update_session(
        self,
        snapshot: AccountSnapshot,
        *,
        credential: str | None = None,
        external_access_token: str | None = None,
    ) -> AccountSnapshot: ...


class NotificationStore(Protocol):
    async def list_private(self, owner_id: str) -> list[PrivateNotice]:
        """Return the owner's notifications that are not soft-deleted."""
        ...

    async def list_broadcast(self) -> list[BroadcastNotice]: ...

    async def broadcast_exists(self, notification_id: str) -> bool: ...

    async def flag_private(
        self,
        notification_id: str,
        effect: MarkEffect,
        *,
        owner_id: str | None = None,
    ) -> bool:
        """Set the read/deleted flag; returns False when no record matched."""
        ...

    async def add_broadcast(self, notice: BroadcastNotice) -> None: ...

    async def add_private(self, notice: PrivateNotice) -> None: ...


class OverlayStore(Protocol):
    async def get(self, account_id: str) -> OverlaySets: ...

    async def add(self, account_id: str, notification_id: str, effect: MarkEffect) -> None:
        """Idempotently add notification_id to the account's read or deleted set."""
        ...
