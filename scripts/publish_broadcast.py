from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
import sys
from uuid import uuid4

from statehub.core.config import get_settings
from statehub.domain.notifications import CLASSIFICATIONS, BroadcastNotice
from statehub.persistence.db import build_engine, build_sessionmaker
from statehub.persistence.repos.base import NotificationStore
from statehub.persistence.repos.notifications import SqlNotificationStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Publish a broadcast notification to every account")
    parser.add_argument("--body", required=True, help="Notification text")
    parser.add_argument("--classification", default="info", choices=CLASSIFICATIONS)
    parser.add_argument("--id", default=None, help="Explicit id; must carry the broadcast prefix")
    parser.add_argument("--expires-at", default=None, help="ISO 8601 expiry timestamp")
    return parser


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_notice(args: argparse.Namespace, *, prefix: str) -> BroadcastNotice:
    notification_id = args.id or f"{prefix}{uuid4().hex}"
    if not notification_id.startswith(prefix):
        raise ValueError(f"Broadcast ids must start with {prefix!r}")
    return BroadcastNotice(
        id=notification_id,
        classification=args.classification,
        body=args.body,
        created_at=datetime.now(timezone.utc),
        expires_at=_parse_timestamp(args.expires_at),
    )


async def publish(args: argparse.Namespace, store: NotificationStore) -> BroadcastNotice:
    notice = build_notice(args, prefix=get_settings().broadcast_id_prefix)
    await store.add_broadcast(notice)
    return notice


async def _run(args: argparse.Namespace) -> int:
    engine = build_engine()
    try:
        notice = await publish(args, SqlNotificationStore(build_sessionmaker(engine)))
    finally:
        await engine.dispose()
    print(f"Published broadcast notification {notice.id}")
    return 0


def main() -> int:
    args = _build_parser().parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface publishing failures clearly
        print(f"publish_broadcast failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
