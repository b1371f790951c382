from __future__ import annotations

import pytest

from statehub.tests.utils.auth import auth_headers
from statehub.tests.utils.seed import add_broadcast, add_private, at


@pytest.mark.asyncio
async def test_feed_merges_private_and_broadcast_newest_first(client, notification_store) -> None:
    await add_private(notification_store, "P1", owner_id="A1", created_at=at(1))
    await add_broadcast(notification_store, "G1", created_at=at(1.5))
    await add_private(notification_store, "P2", owner_id="A1", created_at=at(2))
    await add_private(notification_store, "P3", owner_id="A2", created_at=at(3))

    response = await client.get("/v1/notifications", headers=auth_headers("A1"))

    assert response.status_code == 200
    items = response.json()["data"]["notifications"]
    assert [item["id"] for item in items] == ["P2", "G1", "P1"]
    assert [item["scope"] for item in items] == ["private", "broadcast", "private"]


@pytest.mark.asyncio
async def test_broadcast_read_then_delete_over_http(client, notification_store) -> None:
    await add_broadcast(notification_store, "G1", created_at=at(1))

    first = await client.patch("/v1/notifications/read", json={"id": "G1"}, headers=auth_headers("A1"))
    second = await client.patch("/v1/notifications/read", json={"id": "G1"}, headers=auth_headers("A1"))
    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["data"]["message"] == "Notification marked as read"

    feed = await client.get("/v1/notifications", headers=auth_headers("A1"))
    assert [(item["id"], item["read"]) for item in feed.json()["data"]["notifications"]] == [("G1", True)]

    deleted = await client.request(
        "DELETE", "/v1/notifications/delete", json={"id": "G1"}, headers=auth_headers("A1")
    )
    assert deleted.status_code == 200
    assert deleted.json()["data"]["message"] == "Notification marked as deleted"

    after = await client.get("/v1/notifications", headers=auth_headers("A1"))
    assert after.json()["data"]["notifications"] == []

    other = await client.get("/v1/notifications", headers=auth_headers("A2"))
    assert [(item["id"], item["read"]) for item in other.json()["data"]["notifications"]] == [("G1", False)]


@pytest.mark.asyncio
async def test_broadcast_mark_without_account_is_invalid(client, notification_store) -> None:
    await add_broadcast(notification_store, "G1", created_at=at(1))

    response = await client.patch("/v1/notifications/read", json={"id": "G1"}, headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ARGUMENT"


@pytest.mark.asyncio
async def test_marking_unknown_notifications_is_not_found(client, notification_store) -> None:
    await add_private(notification_store, "P1", owner_id="A1", created_at=at(1))

    unknown_broadcast = await client.patch(
        "/v1/notifications/read", json={"id": "G404"}, headers=auth_headers("A1")
    )
    unknown_private = await client.patch(
        "/v1/notifications/read", json={"id": "P404"}, headers=auth_headers("A1")
    )
    foreign_private = await client.request(
        "DELETE", "/v1/notifications/delete", json={"id": "P1"}, headers=auth_headers("A2")
    )

    for response in (unknown_broadcast, unknown_private, foreign_private):
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_private_delete_hides_notification(client, notification_store) -> None:
    await add_private(notification_store, "P1", owner_id="A1", created_at=at(1))
    await add_private(notification_store, "P2", owner_id="A1", created_at=at(2))

    response = await client.request(
        "DELETE", "/v1/notifications/delete", json={"id": "P2"}, headers=auth_headers("A1")
    )
    assert response.status_code == 200

    feed = await client.get("/v1/notifications", headers=auth_headers("A1"))
    assert [item["id"] for item in feed.json()["data"]["notifications"]] == ["P1"]


@pytest.mark.asyncio
async def test_missing_notification_id_is_invalid(client) -> None:
    response = await client.patch("/v1/notifications/read", json={}, headers=auth_headers("A1"))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_legacy_uid_header_identifies_caller(client, notification_store) -> None:
    await add_private(notification_store, "P1", owner_id="A1", created_at=at(1))

    response = await client.get("/v1/notifications", headers=auth_headers("A1", header="uid"))

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["data"]["notifications"]] == ["P1"]


@pytest.mark.asyncio
async def test_notification_routes_require_access_key(client) -> None:
    response = await client.get("/v1/notifications", headers={"X-Account-Id": "A1"})

    assert response.status_code == 401
