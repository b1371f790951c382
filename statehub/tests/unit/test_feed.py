from __future__ import annotations

import pytest

from statehub.core.errors import InvalidArgumentError, NotFoundError
from statehub.domain.notifications import BroadcastNotice, OverlaySets, PrivateNotice
from statehub.persistence.repos.memory import InMemoryNotificationStore, InMemoryOverlayStore
from statehub.services.feed import NotificationFeedService, merge_feed
from statehub.tests.utils.seed import add_broadcast, add_private, at


def _feed(notifications: InMemoryNotificationStore, overlays: InMemoryOverlayStore) -> NotificationFeedService:
    return NotificationFeedService(notifications, overlays, broadcast_prefix="G")


@pytest.mark.asyncio
async def test_feed_interleaves_private_and_broadcast_by_time() -> None:
    notifications = InMemoryNotificationStore()
    await add_private(notifications, "P1", owner_id="A1", created_at=at(1))
    await add_broadcast(notifications, "G1", created_at=at(1.5))
    await add_private(notifications, "P2", owner_id="A1", created_at=at(2))

    items = await _feed(notifications, InMemoryOverlayStore()).list_feed("A1")

    assert [item.id for item in items] == ["P2", "G1", "P1"]
    assert [item.scope for item in items] == ["private", "broadcast", "private"]


def test_merge_feed_keeps_private_first_on_equal_timestamps() -> None:
    private = [PrivateNotice(id="P1", owner_id="A1", classification="info", body="p", created_at=at(1))]
    broadcast = [BroadcastNotice(id="G1", classification="info", body="g", created_at=at(1))]

    items = merge_feed(private, broadcast, OverlaySets())

    assert [item.id for item in items] == ["P1", "G1"]


def test_merge_feed_applies_overlay_sets() -> None:
    broadcast = [
        BroadcastNotice(id="G1", classification="info", body="one", created_at=at(1)),
        BroadcastNotice(id="G2", classification="warning", body="two", created_at=at(2)),
    ]

    items = merge_feed([], broadcast, OverlaySets(read=frozenset({"G1"}), deleted=frozenset({"G2"})))

    assert [(item.id, item.read) for item in items] == [("G1", True)]


@pytest.mark.asyncio
async def test_broadcast_read_and_delete_are_per_account() -> None:
    notifications = InMemoryNotificationStore()
    overlays = InMemoryOverlayStore()
    await add_broadcast(notifications, "G1", created_at=at(1))
    service = _feed(notifications, overlays)

    initial = await service.list_feed("A1")
    assert [(item.id, item.read) for item in initial] == [("G1", False)]

    await service.mark("A1", "G1", "read")
    await service.mark("A1", "G1", "read")
    assert (await overlays.get("A1")).read == frozenset({"G1"})
    assert [(item.id, item.read) for item in await service.list_feed("A1")] == [("G1", True)]

    await service.mark("A1", "G1", "deleted")
    assert await service.list_feed("A1") == []

    # Another account's view of the shared notification is untouched.
    assert [(item.id, item.read) for item in await service.list_feed("A2")] == [("G1", False)]
    assert await notifications.broadcast_exists("G1")


@pytest.mark.asyncio
async def test_marking_broadcast_requires_account_and_existing_notice() -> None:
    notifications = InMemoryNotificationStore()
    await add_broadcast(notifications, "G1", created_at=at(1))
    service = _feed(notifications, InMemoryOverlayStore())

    with pytest.raises(InvalidArgumentError):
        await service.mark(None, "G1", "read")
    with pytest.raises(NotFoundError):
        await service.mark("A1", "G404", "read")


@pytest.mark.asyncio
async def test_mark_validates_effect_and_id() -> None:
    service = _feed(InMemoryNotificationStore(), InMemoryOverlayStore())

    with pytest.raises(InvalidArgumentError):
        await service.mark("A1", "P1", "archived")  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError):
        await service.mark("A1", "", "read")
    with pytest.raises(InvalidArgumentError):
        await service.mark("A1", None, "deleted")


@pytest.mark.asyncio
async def test_private_flags_are_set_on_the_record() -> None:
    notifications = InMemoryNotificationStore()
    await add_private(notifications, "P1", owner_id="A1", created_at=at(1))
    await add_private(notifications, "P2", owner_id="A1", created_at=at(2))
    service = _feed(notifications, InMemoryOverlayStore())

    await service.mark("A1", "P1", "read")
    stored = notifications.get_private("P1")
    assert stored is not None and stored.read is True

    await service.mark("A1", "P2", "deleted")
    items = await service.list_feed("A1")
    assert [(item.id, item.read) for item in items] == [("P1", True)]


@pytest.mark.asyncio
async def test_private_mark_of_missing_or_foreign_notice_is_not_found() -> None:
    notifications = InMemoryNotificationStore()
    await add_private(notifications, "P1", owner_id="A1", created_at=at(1))
    service = _feed(notifications, InMemoryOverlayStore())

    with pytest.raises(NotFoundError):
        await service.mark("A1", "P404", "read")
    with pytest.raises(NotFoundError):
        await service.mark("A2", "P1", "deleted")

    stored = notifications.get_private("P1")
    assert stored is not None and stored.deleted is False


@pytest.mark.asyncio
async def test_feed_requires_account_id() -> None:
    service = _feed(InMemoryNotificationStore(), InMemoryOverlayStore())

    with pytest.raises(InvalidArgumentError):
        await service.list_feed(None)


@pytest.mark.asyncio
async def test_feed_is_sorted_newest_first() -> None:
    notifications = InMemoryNotificationStore()
    for index, hours in enumerate((3, 1, 5, 2, 4)):
        await add_private(notifications, f"P{index}", owner_id="A1", created_at=at(hours))
        await add_broadcast(notifications, f"G{index}", created_at=at(hours + 0.5))

    items = await _feed(notifications, InMemoryOverlayStore()).list_feed("A1")

    timestamps = [item.created_at for item in items]
    assert timestamps == sorted(timestamps, reverse=True)
    assert len(items) == 10
