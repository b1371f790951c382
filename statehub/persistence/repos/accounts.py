from __future__ import annotations

from dataclasses import replace
import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statehub.core.errors import ConflictError, UnavailableError
from statehub.domain.accounts import AccountChanges, AccountSnapshot, AuditEntry
from statehub.domain.models import Account, AccountAuditEntry


logger = logging.getLogger(__name__)


def _entry_from_row(row: AccountAuditEntry) -> AuditEntry:
    return AuditEntry(
        sequence=row.sequence,
        occurred_at=row.occurred_at,
        kind=row.kind,  # type: ignore[arg-type]
        justification=row.justification,
        executor=row.executor,
        quantity=row.quantity,
        credential=row.credential,
        expires_at=row.expires_at,
    )


def _snapshot_from_rows(account: Account, entries: list[AccountAuditEntry]) -> AccountSnapshot:
    return AccountSnapshot(
        id=account.id,
        email=account.email,
        credential=account.credential,
        balance=account.balance,
        suspended=account.suspended,
        version=account.version,
        audit_log=tuple(_entry_from_row(row) for row in entries),
        external_access_token=account.external_access_token,
        created_at=account.created_at,
    )


class SqlAccountStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, account_id: str) -> AccountSnapshot | None:
        try:
            async with self._session_factory() as session:
                account = (
                    await session.execute(select(Account).where(Account.id == account_id))
                ).scalar_one_or_none()
                if account is None:
                    return None
                entries = (
                    await session.execute(
                        select(AccountAuditEntry)
                        .where(AccountAuditEntry.account_id == account_id)
                        .order_by(AccountAuditEntry.sequence.asc())
                    )
                ).scalars().all()
                return _snapshot_from_rows(account, list(entries))
        except (SQLAlchemyError, OSError) as exc:
            logger.error("account_read_failed account_id=%s", account_id, exc_info=exc)
            raise UnavailableError("Account store unavailable") from exc

    async def create(self, snapshot: AccountSnapshot) -> AccountSnapshot:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(
                        Account(
                            id=snapshot.id,
                            email=snapshot.email,
                            external_access_token=snapshot.external_access_token,
                            credential=snapshot.credential,
                            balance=snapshot.balance,
                            suspended=snapshot.suspended,
                            version=snapshot.version,
                        )
                    )
        except IntegrityError as exc:
            raise ConflictError("Account already exists", account_id=snapshot.id) from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("account_create_failed account_id=%s", snapshot.id, exc_info=exc)
            raise UnavailableError("Account store unavailable") from exc
        return snapshot

    async def commit_action(
        self,
        snapshot: AccountSnapshot,
        changes: AccountChanges,
        entry: AuditEntry,
    ) -> AccountSnapshot:
        # Field update and audit insert share one transaction so the append is all-or-nothing.
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._conditional_update(
                        session,
                        snapshot,
                        balance=changes.balance,
                        suspended=changes.suspended,
                        credential=changes.credential,
                    )
                    session.add(
                        AccountAuditEntry(
                            account_id=snapshot.id,
                            sequence=entry.sequence,
                            occurred_at=entry.occurred_at,
                            kind=entry.kind,
                            justification=entry.justification,
                            executor=entry.executor,
                            quantity=entry.quantity,
                            credential=entry.credential,
                            expires_at=entry.expires_at,
                        )
                    )
        except IntegrityError as exc:
            # A concurrent writer claimed this sequence number first.
            raise ConflictError(
                "Audit sequence already taken", account_id=snapshot.id, sequence=entry.sequence
            ) from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("account_commit_failed account_id=%s", snapshot.id, exc_info=exc)
            raise UnavailableError("Account store unavailable") from exc
        return replace(
            snapshot,
            balance=changes.balance,
            suspended=changes.suspended,
            credential=changes.credential,
            version=snapshot.version + 1,
            audit_log=snapshot.audit_log + (entry,),
        )

    async def update_session(
        self,
        snapshot: AccountSnapshot,
        *,
        credential: str | None = None,
        external_access_token: str | None = None,
    ) -> AccountSnapshot:
        values: dict[str, Any] = {}
        if credential is not None:
            values["credential"] = credential
        if external_access_token is not None:
            values["external_access_token"] = external_access_token
        if not values:
            return snapshot
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._conditional_update(session, snapshot, **values)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("account_session_update_failed account_id=%s", snapshot.id, exc_info=exc)
            raise UnavailableError("Account store unavailable") from exc
        return replace(snapshot, version=snapshot.version + 1, **values)

    async def _conditional_update(
        self,
        session: AsyncSession,
        snapshot: AccountSnapshot,
        **values: Any,
    ) -> None:
        result = await session.execute(
            update(Account)
            .where(Account.id == snapshot.id, Account.version == snapshot.version)
            .values(version=snapshot.version + 1, updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        if int(result.rowcount or 0) != 1:
            raise ConflictError(
                "Account changed concurrently", account_id=snapshot.id, expected_version=snapshot.version
            )
