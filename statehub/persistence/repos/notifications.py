from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statehub.core.errors import ConflictError, UnavailableError
from statehub.domain.models import BroadcastNotification, NotificationOverlayEntry, PrivateNotification
from statehub.domain.notifications import BroadcastNotice, MarkEffect, OverlaySets, PrivateNotice


logger = logging.getLogger(__name__)


def _to_utc(value: datetime | None) -> datetime | None:
    # SQLite keeps wall-clock time only; store every timestamp in UTC so ordering holds across offsets.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _broadcast_from_row(row: BroadcastNotification) -> BroadcastNotice:
    return BroadcastNotice(
        id=row.id,
        classification=row.classification,  # type: ignore[arg-type]
        body=row.body,
        created_at=_to_utc(row.created_at),
        expires_at=_to_utc(row.expires_at),
    )


def _private_from_row(row: PrivateNotification) -> PrivateNotice:
    return PrivateNotice(
        id=row.id,
        owner_id=row.owner_id,
        classification=row.classification,  # type: ignore[arg-type]
        body=row.body,
        created_at=_to_utc(row.created_at),
        expires_at=_to_utc(row.expires_at),
        read=row.read,
        deleted=row.deleted,
    )


class SqlNotificationStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_private(self, owner_id: str) -> list[PrivateNotice]:
        stmt = (
            select(PrivateNotification)
            .where(PrivateNotification.owner_id == owner_id, PrivateNotification.deleted.is_(False))
            .order_by(PrivateNotification.created_at.desc(), PrivateNotification.id.asc())
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("private_notifications_read_failed owner_id=%s", owner_id, exc_info=exc)
            raise UnavailableError("Notification store unavailable") from exc
        return [_private_from_row(row) for row in rows]

    async def list_broadcast(self) -> list[BroadcastNotice]:
        stmt = select(BroadcastNotification).order_by(
            BroadcastNotification.created_at.desc(), BroadcastNotification.id.asc()
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("broadcast_notifications_read_failed", exc_info=exc)
            raise UnavailableError("Notification store unavailable") from exc
        return [_broadcast_from_row(row) for row in rows]

    async def broadcast_exists(self, notification_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                found = (
                    await session.execute(
                        select(BroadcastNotification.id).where(BroadcastNotification.id == notification_id)
                    )
                ).scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("broadcast_lookup_failed notification_id=%s", notification_id, exc_info=exc)
            raise UnavailableError("Notification store unavailable") from exc
        return found is not None

    async def flag_private(
        self,
        notification_id: str,
        effect: MarkEffect,
        *,
        owner_id: str | None = None,
    ) -> bool:
        stmt = update(PrivateNotification).where(PrivateNotification.id == notification_id)
        if owner_id is not None:
            stmt = stmt.where(PrivateNotification.owner_id == owner_id)
        if effect == "read":
            stmt = stmt.values(read=True)
        else:
            stmt = stmt.values(deleted=True)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt.execution_options(synchronize_session=False))
        except (SQLAlchemyError, OSError) as exc:
            logger.error("private_notification_update_failed notification_id=%s", notification_id, exc_info=exc)
            raise UnavailableError("Notification store unavailable") from exc
        return int(result.rowcount or 0) > 0

    async def add_broadcast(self, notice: BroadcastNotice) -> None:
        row = BroadcastNotification(
            id=notice.id,
            classification=notice.classification,
            body=notice.body,
            created_at=_to_utc(notice.created_at),
            expires_at=_to_utc(notice.expires_at),
        )
        await self._insert(row)

    async def add_private(self, notice: PrivateNotice) -> None:
        row = PrivateNotification(
            id=notice.id,
            owner_id=notice.owner_id,
            classification=notice.classification,
            body=notice.body,
            created_at=_to_utc(notice.created_at),
            expires_at=_to_utc(notice.expires_at),
            read=notice.read,
            deleted=notice.deleted,
        )
        await self._insert(row)

    async def _insert(self, row: BroadcastNotification | PrivateNotification) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
        except IntegrityError as exc:
            raise ConflictError("Notification already exists", notification_id=row.id) from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("notification_insert_failed notification_id=%s", row.id, exc_info=exc)
            raise UnavailableError("Notification store unavailable") from exc


class SqlOverlayStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, account_id: str) -> OverlaySets:
        stmt = select(NotificationOverlayEntry.notification_id, NotificationOverlayEntry.effect).where(
            NotificationOverlayEntry.account_id == account_id
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("overlay_read_failed account_id=%s", account_id, exc_info=exc)
            raise UnavailableError("Overlay store unavailable") from exc
        read = frozenset(notification_id for notification_id, effect in rows if effect == "read")
        deleted = frozenset(notification_id for notification_id, effect in rows if effect == "deleted")
        return OverlaySets(read=read, deleted=deleted)

    async def add(self, account_id: str, notification_id: str, effect: MarkEffect) -> None:
        values = {"account_id": account_id, "notification_id": notification_id, "effect": effect}
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._insert_ignore(session, values)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "overlay_write_failed account_id=%s notification_id=%s", account_id, notification_id, exc_info=exc
            )
            raise UnavailableError("Overlay store unavailable") from exc

    async def _insert_ignore(self, session: AsyncSession, values: dict[str, str]) -> None:
        # Set semantics: a concurrent or repeated add of the same id is a no-op.
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(NotificationOverlayEntry).values(**values).on_conflict_do_nothing()
            await session.execute(stmt)
            return
        if dialect == "sqlite":
            stmt = sqlite_insert(NotificationOverlayEntry).values(**values).on_conflict_do_nothing()
            await session.execute(stmt)
            return
        existing = await session.get(
            NotificationOverlayEntry, (values["account_id"], values["notification_id"], values["effect"])
        )
        if existing is not None:
            return
        try:
            async with session.begin_nested():
                session.add(NotificationOverlayEntry(**values))
        except IntegrityError:
            # Lost the race to an identical insert; the id is present either way.
            return
