"""Notification overlay engine.

Broadcast notifications are shared by every account and never written to on
behalf of one account; each account's read/deleted view of them lives in its
overlay sets. Private notifications carry their own flags.
"""

from __future__ import annotations

import logging

from statehub.core.config import get_settings
from statehub.core.errors import InvalidArgumentError, NotFoundError
from statehub.domain.notifications import (
    MARK_EFFECTS,
    BroadcastNotice,
    FeedItem,
    MarkEffect,
    OverlaySets,
    PrivateNotice,
)
from statehub.persistence.repos.base import NotificationStore, OverlayStore


logger = logging.getLogger(__name__)


def merge_feed(
    private: list[PrivateNotice],
    broadcast: list[BroadcastNotice],
    overlay: OverlaySets,
) -> list[FeedItem]:
    # Concatenate private-then-broadcast and stable-sort so equal timestamps keep that order.
    items: list[FeedItem] = [
        FeedItem(
            id=notice.id,
            scope="private",
            classification=notice.classification,
            body=notice.body,
            created_at=notice.created_at,
            expires_at=notice.expires_at,
            read=notice.read,
        )
        for notice in private
        if not notice.deleted
    ]
    items.extend(
        FeedItem(
            id=notice.id,
            scope="broadcast",
            classification=notice.classification,
            body=notice.body,
            created_at=notice.created_at,
            expires_at=notice.expires_at,
            read=notice.id in overlay.read,
        )
        for notice in broadcast
        if notice.id not in overlay.deleted
    )
    return sorted(items, key=lambda item: item.created_at, reverse=True)


class NotificationFeedService:
    def __init__(
        self,
        notifications: NotificationStore,
        overlays: OverlayStore,
        *,
        broadcast_prefix: str | None = None,
    ) -> None:
        self._notifications = notifications
        self._overlays = overlays
        self._broadcast_prefix = broadcast_prefix or get_settings().broadcast_id_prefix

    def is_broadcast_id(self, notification_id: str) -> bool:
        return notification_id.startswith(self._broadcast_prefix)

    async def list_feed(self, account_id: str | None) -> list[FeedItem]:
        if not account_id:
            raise InvalidArgumentError("Account ID is required")
        private = await self._notifications.list_private(account_id)
        broadcast = await self._notifications.list_broadcast()
        overlay = await self._overlays.get(account_id)
        return merge_feed(private, broadcast, overlay)

    async def mark(
        self,
        account_id: str | None,
        notification_id: str | None,
        effect: MarkEffect,
    ) -> None:
        if effect not in MARK_EFFECTS:
            raise InvalidArgumentError(f"Invalid effect: {effect}", effect=effect)
        if not notification_id:
            raise InvalidArgumentError("Notification ID is required")

        if self.is_broadcast_id(notification_id):
            if not account_id:
                raise InvalidArgumentError("Account ID is required")
            if not await self._notifications.broadcast_exists(notification_id):
                raise NotFoundError("Broadcast notification not found", notification_id=notification_id)
            await self._overlays.add(account_id, notification_id, effect)
            logger.info(
                "broadcast_notification_marked account_id=%s notification_id=%s effect=%s",
                account_id,
                notification_id,
                effect,
            )
            return

        # Scope to the caller when known so one account cannot flag another's notification.
        found = await self._notifications.flag_private(notification_id, effect, owner_id=account_id or None)
        if not found:
            raise NotFoundError("Notification not found", notification_id=notification_id)
        logger.info(
            "private_notification_marked account_id=%s notification_id=%s effect=%s",
            account_id,
            notification_id,
            effect,
        )
