from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from statehub.apps.api.main import create_app
from statehub.core.config import Settings
from statehub.domain.models import Base
from statehub.persistence.db import build_engine, build_sessionmaker
from statehub.persistence.repos.accounts import SqlAccountStore
from statehub.persistence.repos.notifications import SqlNotificationStore, SqlOverlayStore
from statehub.services import telemetry
from statehub.tests.utils.auth import TEST_ACCESS_KEY, TEST_CREDENTIAL_SECRET


@pytest.fixture(autouse=True)
def reset_telemetry() -> None:
    # Counters are process-wide; keep per-test assertions independent.
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'statehub.db'}",
        access_key=TEST_ACCESS_KEY,
        credential_secret=TEST_CREDENTIAL_SECRET,
        action_conflict_backoff_ms=0,
    )


@pytest.fixture
async def engine(settings: Settings):
    # One sqlite file per test keeps SQL-backed tests isolated without migrations.
    engine = build_engine(settings=settings)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def account_store(session_factory) -> SqlAccountStore:
    return SqlAccountStore(session_factory)


@pytest.fixture
def notification_store(session_factory) -> SqlNotificationStore:
    return SqlNotificationStore(session_factory)


@pytest.fixture
def overlay_store(session_factory) -> SqlOverlayStore:
    return SqlOverlayStore(session_factory)


@pytest.fixture
async def client(settings, account_store, notification_store, overlay_store):
    app = create_app(
        settings,
        account_store=account_store,
        notification_store=notification_store,
        overlay_store=overlay_store,
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
