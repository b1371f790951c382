from __future__ import annotations

import asyncio
from dataclasses import replace

from statehub.core.errors import ConflictError
from statehub.domain.accounts import AccountChanges, AccountSnapshot, AuditEntry
from statehub.domain.notifications import BroadcastNotice, MarkEffect, OverlaySets, PrivateNotice


class InMemoryAccountStore:
    # Process-local account store for deterministic tests and lightweight usage.
    def __init__(self) -> None:
        self._accounts: dict[str, AccountSnapshot] = {}
        self._lock = asyncio.Lock()

    async def get(self, account_id: str) -> AccountSnapshot | None:
        # Yield once so callers hit the same suspension point as a networked store.
        await asyncio.sleep(0)
        return self._accounts.get(account_id)

    async def create(self, snapshot: AccountSnapshot) -> AccountSnapshot:
        async with self._lock:
            if snapshot.id in self._accounts:
                raise ConflictError("Account already exists", account_id=snapshot.id)
            self._accounts[snapshot.id] = snapshot
            return snapshot

    async def commit_action(
        self,
        snapshot: AccountSnapshot,
        changes: AccountChanges,
        entry: AuditEntry,
    ) -> AccountSnapshot:
        await asyncio.sleep(0)
        async with self._lock:
            self._check_version(snapshot)
            current = self._accounts[snapshot.id]
            if entry.sequence != current.next_sequence():
                raise ConflictError(
                    "Audit sequence already taken", account_id=snapshot.id, sequence=entry.sequence
                )
            updated = replace(
                current,
                balance=changes.balance,
                suspended=changes.suspended,
                credential=changes.credential,
                version=current.version + 1,
                audit_log=current.audit_log + (entry,),
            )
            self._accounts[snapshot.id] = updated
            return updated

    async def update_session(
        self,
        snapshot: AccountSnapshot,
        *,
        credential: str | None = None,
        external_access_token: str | None = None,
    ) -> AccountSnapshot:
        async with self._lock:
            self._check_version(snapshot)
            current = self._accounts[snapshot.id]
            updated = replace(
                current,
                credential=credential if credential is not None else current.credential,
                external_access_token=(
                    external_access_token if external_access_token is not None else current.external_access_token
                ),
                version=current.version + 1,
            )
            self._accounts[snapshot.id] = updated
            return updated

    def _check_version(self, snapshot: AccountSnapshot) -> None:
        current = self._accounts.get(snapshot.id)
        if current is None or current.version != snapshot.version:
            raise ConflictError(
                "Account changed concurrently", account_id=snapshot.id, expected_version=snapshot.version
            )


class InMemoryNotificationStore:
    def __init__(self) -> None:
        self._broadcast: dict[str, BroadcastNotice] = {}
        self._private: dict[str, PrivateNotice] = {}
        self._lock = asyncio.Lock()

    async def list_private(self, owner_id: str) -> list[PrivateNotice]:
        await asyncio.sleep(0)
        return [
            notice
            for notice in self._private.values()
            if notice.owner_id == owner_id and not notice.deleted
        ]

    async def list_broadcast(self) -> list[BroadcastNotice]:
        await asyncio.sleep(0)
        return list(self._broadcast.values())

    async def broadcast_exists(self, notification_id: str) -> bool:
        await asyncio.sleep(0)
        return notification_id in self._broadcast

    async def flag_private(
        self,
        notification_id: str,
        effect: MarkEffect,
        *,
        owner_id: str | None = None,
    ) -> bool:
        async with self._lock:
            notice = self._private.get(notification_id)
            if notice is None or (owner_id is not None and notice.owner_id != owner_id):
                return False
            if effect == "read":
                self._private[notification_id] = replace(notice, read=True)
            else:
                self._private[notification_id] = replace(notice, deleted=True)
            return True

    async def add_broadcast(self, notice: BroadcastNotice) -> None:
        async with self._lock:
            if notice.id in self._broadcast:
                raise ConflictError("Notification already exists", notification_id=notice.id)
            self._broadcast[notice.id] = notice

    async def add_private(self, notice: PrivateNotice) -> None:
        async with self._lock:
            if notice.id in self._private:
                raise ConflictError("Notification already exists", notification_id=notice.id)
            self._private[notice.id] = notice

    def get_private(self, notification_id: str) -> PrivateNotice | None:
        return self._private.get(notification_id)


class InMemoryOverlayStore:
    def __init__(self) -> None:
        # Mapping of account id to effect to id set; missing keys read as empty sets.
        self._entries: dict[str, dict[str, set[str]]] = {}
        self._lock = asyncio.Lock()

    async def get(self, account_id: str) -> OverlaySets:
        await asyncio.sleep(0)
        entry = self._entries.get(account_id)
        if entry is None:
            return OverlaySets()
        return OverlaySets(read=frozenset(entry["read"]), deleted=frozenset(entry["deleted"]))

    async def add(self, account_id: str, notification_id: str, effect: MarkEffect) -> None:
        async with self._lock:
            entry = self._entries.setdefault(account_id, {"read": set(), "deleted": set()})
            entry[effect].add(notification_id)
