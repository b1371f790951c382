from __future__ import annotations

import pytest

from statehub.core.errors import InvalidArgumentError, NotFoundError
from statehub.persistence.repos.memory import InMemoryAccountStore
from statehub.services.credentials import generate_credential
from statehub.services.sessions import AccountSessionService


SECRET = "session-secret"


def _service(store: InMemoryAccountStore) -> AccountSessionService:
    return AccountSessionService(store, credential_secret=SECRET, default_balance=500)


@pytest.mark.asyncio
async def test_establish_session_creates_account_with_defaults() -> None:
    store = InMemoryAccountStore()
    service = _service(store)

    result = await service.establish_session("A1", email="a1@example.com", external_access_token="ext-1")

    assert result.created is True
    assert result.credential == generate_credential("A1", SECRET)
    profile = await service.get_profile("A1")
    assert profile.balance == 500
    assert profile.suspended is False
    assert profile.audit_log == ()
    assert profile.external_access_token == "ext-1"


@pytest.mark.asyncio
async def test_new_accounts_require_email_and_external_token() -> None:
    store = InMemoryAccountStore()
    service = _service(store)

    with pytest.raises(InvalidArgumentError):
        await service.establish_session("A1", email="a1@example.com")
    with pytest.raises(InvalidArgumentError):
        await service.establish_session("A1", external_access_token="ext-1")
    with pytest.raises(InvalidArgumentError):
        await service.establish_session(None, email="a1@example.com", external_access_token="ext-1")

    assert await store.get("A1") is None


@pytest.mark.asyncio
async def test_existing_session_refresh_replaces_supplied_fields() -> None:
    store = InMemoryAccountStore()
    service = _service(store)
    await service.establish_session("A1", email="a1@example.com", external_access_token="ext-1")

    refreshed = await service.establish_session("A1", external_access_token="ext-2")
    assert refreshed.created is False
    assert refreshed.credential == generate_credential("A1", SECRET)

    replaced = await service.establish_session("A1", credential="caller-chosen")
    assert replaced.credential == "caller-chosen"

    profile = await service.get_profile("A1")
    assert profile.external_access_token == "ext-2"
    assert profile.credential == "caller-chosen"
    # Session refreshes are not audited.
    assert profile.audit_log == ()


@pytest.mark.asyncio
async def test_lookup_credential_refreshes_external_token() -> None:
    store = InMemoryAccountStore()
    service = _service(store)
    created = await service.establish_session("A1", email="a1@example.com", external_access_token="ext-1")

    credential = await service.lookup_credential("A1", external_access_token="ext-9")

    assert credential == created.credential
    assert (await service.get_profile("A1")).external_access_token == "ext-9"


@pytest.mark.asyncio
async def test_lookup_and_profile_of_missing_account_are_not_found() -> None:
    service = _service(InMemoryAccountStore())

    with pytest.raises(NotFoundError):
        await service.lookup_credential("A404")
    with pytest.raises(NotFoundError):
        await service.get_profile("A404")
    with pytest.raises(InvalidArgumentError):
        await service.lookup_credential(None)
