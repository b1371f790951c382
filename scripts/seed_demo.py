from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import sys

from statehub.core.errors import ConflictError
from statehub.domain.models import Base
from statehub.domain.notifications import BroadcastNotice, Classification, PrivateNotice
from statehub.persistence.db import build_engine, build_sessionmaker
from statehub.persistence.repos.accounts import SqlAccountStore
from statehub.persistence.repos.base import AccountStore, NotificationStore
from statehub.persistence.repos.notifications import SqlNotificationStore
from statehub.services.sessions import AccountSessionService


DEMO_ACCOUNT_ID = "A1"
DEMO_EMAIL = "demo@example.com"
DEMO_EXTERNAL_TOKEN = "demo-external-token"


@dataclass(frozen=True)
class DemoNotification:
    id: str
    classification: Classification
    body: str
    age: timedelta


DEMO_PRIVATE = (
    DemoNotification("P-demo-1", "success", "Your quota was topped up.", timedelta(hours=3)),
    DemoNotification("P-demo-2", "warning", "Your quota is running low.", timedelta(hours=1)),
)
DEMO_BROADCAST = (
    DemoNotification("G-demo-1", "info", "Scheduled maintenance this weekend.", timedelta(hours=2)),
)


async def seed(accounts: AccountStore, notifications: NotificationStore, *, now: datetime) -> int:
    sessions = AccountSessionService(accounts)
    result = await sessions.establish_session(
        DEMO_ACCOUNT_ID, email=DEMO_EMAIL, external_access_token=DEMO_EXTERNAL_TOKEN
    )
    inserted = 0
    for item in DEMO_PRIVATE:
        try:
            await notifications.add_private(
                PrivateNotice(
                    id=item.id,
                    owner_id=DEMO_ACCOUNT_ID,
                    classification=item.classification,
                    body=item.body,
                    created_at=now - item.age,
                )
            )
            inserted += 1
        except ConflictError:
            continue
    for item in DEMO_BROADCAST:
        try:
            await notifications.add_broadcast(
                BroadcastNotice(
                    id=item.id,
                    classification=item.classification,
                    body=item.body,
                    created_at=now - item.age,
                )
            )
            inserted += 1
        except ConflictError:
            continue
    state = "created" if result.created else "already present"
    print(f"Demo account {DEMO_ACCOUNT_ID} {state}; inserted {inserted} notifications.")
    return inserted


async def seed_demo() -> int:
    engine = build_engine()
    try:
        # Local databases may not have been migrated yet.
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        session_factory = build_sessionmaker(engine)
        await seed(
            SqlAccountStore(session_factory),
            SqlNotificationStore(session_factory),
            now=datetime.now(timezone.utc),
        )
    finally:
        await engine.dispose()
    return 0


def main() -> int:
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
