from __future__ import annotations

import pytest

from statehub.tests.utils.auth import auth_headers
from statehub.tests.utils.seed import create_account


HEADERS = auth_headers()


@pytest.mark.asyncio
async def test_requests_without_access_key_are_rejected(client, account_store) -> None:
    await create_account(account_store, "A1")

    missing = await client.get("/v1/accounts/A1")
    wrong = await client.patch(
        "/v1/accounts/A1", json={"action": "credit", "amount": 100}, headers={"Key": "nope"}
    )

    for response in (missing, wrong):
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_UNAUTHORIZED"
    snapshot = await account_store.get("A1")
    assert snapshot is not None and snapshot.balance == 500


@pytest.mark.asyncio
async def test_credit_then_overdraw_over_http(client, account_store) -> None:
    await create_account(account_store, "A1", balance=500)

    credited = await client.patch("/v1/accounts/A1", json={"action": "credit", "amount": 100}, headers=HEADERS)
    assert credited.status_code == 200
    body = credited.json()["data"]
    assert body["message"] == "credit executed successfully"
    assert body["account"]["balance"] == 600
    assert body["account"]["audit_log"][0]["quantity"] == 100
    assert body["account"]["audit_log"][0]["justification"] == "Quota added"

    overdraw = await client.patch("/v1/accounts/A1", json={"action": "debit", "amount": 700}, headers=HEADERS)
    assert overdraw.status_code == 400
    error = overdraw.json()["error"]
    assert error["code"] == "INVALID_ARGUMENT"
    assert error["details"] == {"balance": 600, "amount": 700}

    profile = await client.get("/v1/accounts/A1", headers=HEADERS)
    assert profile.status_code == 200
    account = profile.json()["data"]
    assert account["balance"] == 600
    assert [entry["sequence"] for entry in account["audit_log"]] == [1]
    assert "external_access_token" not in account


@pytest.mark.asyncio
async def test_legacy_action_names_and_reason_alias(client, account_store) -> None:
    await create_account(account_store, "A1")

    response = await client.patch(
        "/v1/accounts/A1",
        json={"action": "ban", "reason": "chargeback", "executor": "mod-7"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["message"] == "suspend executed successfully"
    assert data["account"]["suspended"] is True
    entry = data["account"]["audit_log"][-1]
    assert entry["kind"] == "suspend"
    assert entry["justification"] == "chargeback"
    assert entry["executor"] == "mod-7"


@pytest.mark.asyncio
async def test_rotate_credential_requires_justification_over_http(client, account_store) -> None:
    await create_account(account_store, "A1", credential="old")

    rejected = await client.patch("/v1/accounts/A1", json={"action": "rotate-credential"}, headers=HEADERS)
    assert rejected.status_code == 400

    rotated = await client.patch(
        "/v1/accounts/A1", json={"action": "updatetoken", "justification": "leaked"}, headers=HEADERS
    )
    assert rotated.status_code == 200
    account = rotated.json()["data"]["account"]
    assert account["credential"] != "old"
    assert [entry["kind"] for entry in account["audit_log"]] == ["rotate-credential"]


@pytest.mark.asyncio
async def test_invalid_actions_and_amounts_map_to_invalid_argument(client, account_store) -> None:
    await create_account(account_store, "A1")

    for payload in (
        {"action": "refund", "amount": 1},
        {"action": "credit", "amount": 0},
        {"action": "credit", "amount": "ten"},
        {"action": "debit"},
    ):
        response = await client.patch("/v1/accounts/A1", json=payload, headers=HEADERS)
        assert response.status_code == 400, payload
        assert response.json()["error"]["code"] == "INVALID_ARGUMENT"

    snapshot = await account_store.get("A1")
    assert snapshot is not None
    assert snapshot.balance == 500
    assert snapshot.audit_log == ()


@pytest.mark.asyncio
async def test_missing_account_is_not_found(client) -> None:
    response = await client.get("/v1/accounts/A404", headers=HEADERS)
    action = await client.patch("/v1/accounts/A404", json={"action": "credit", "amount": 1}, headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
    assert action.status_code == 404


@pytest.mark.asyncio
async def test_unknown_action_on_missing_account_is_not_found(client) -> None:
    response = await client.patch("/v1/accounts/nobody", json={"action": "bogus"}, headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_responses_carry_request_ids(client) -> None:
    response = await client.get("/v1/health", headers={"X-Request-Id": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "req-123"
    assert response.json()["meta"] == {"request_id": "req-123", "api_version": "v1"}


@pytest.mark.asyncio
async def test_oversized_credit_is_invalid_argument(client, account_store) -> None:
    await create_account(account_store, "A1", balance=500)

    oversized = await client.patch("/v1/accounts/A1", json={"action": "credit", "amount": 2**63}, headers=HEADERS)
    assert oversized.status_code == 400
    assert oversized.json()["error"]["code"] == "INVALID_ARGUMENT"

    ceiling = 2**63 - 1
    filled = await client.patch(
        "/v1/accounts/A1", json={"action": "credit", "amount": ceiling - 500}, headers=HEADERS
    )
    assert filled.status_code == 200
    assert filled.json()["data"]["account"]["balance"] == ceiling

    past_ceiling = await client.patch("/v1/accounts/A1", json={"action": "credit", "amount": 1}, headers=HEADERS)
    assert past_ceiling.status_code == 400
    assert past_ceiling.json()["error"]["details"] == {"balance": ceiling, "amount": 1}

    snapshot = await account_store.get("A1")
    assert snapshot is not None
    assert snapshot.balance == ceiling
    assert [entry.quantity for entry in snapshot.audit_log] == [ceiling - 500]
