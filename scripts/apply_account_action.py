from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
import sys

from statehub.core.errors import StatehubError
from statehub.domain.accounts import AccountSnapshot
from statehub.domain.actions import ACTION_NAMES, LEGACY_ACTION_NAMES, parse_action
from statehub.persistence.db import build_engine, build_sessionmaker
from statehub.persistence.repos.accounts import SqlAccountStore
from statehub.persistence.repos.base import AccountStore
from statehub.services.accounts import AccountActionService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply an audited action to an account")
    parser.add_argument("--account", required=True, help="Account identifier")
    parser.add_argument(
        "--action",
        required=True,
        choices=sorted([*ACTION_NAMES, *LEGACY_ACTION_NAMES]),
        help="Action to apply",
    )
    parser.add_argument("--amount", type=int, default=None, help="Quota amount for credit/debit")
    parser.add_argument("--reason", default=None, help="Justification recorded in the audit log")
    parser.add_argument("--executor", default=None, help="Operator identity; defaults to system")
    parser.add_argument("--expiry", default=None, help="ISO 8601 expiry for suspend/reinstate")
    return parser


def _parse_expiry(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def apply(args: argparse.Namespace, store: AccountStore) -> AccountSnapshot:
    action = parse_action(
        args.action,
        amount=args.amount,
        justification=args.reason,
        expires_at=_parse_expiry(args.expiry),
    )
    service = AccountActionService(store)
    return await service.apply_action(args.account, action, executor=args.executor)


async def _run(args: argparse.Namespace) -> int:
    engine = build_engine()
    try:
        snapshot = await apply(args, SqlAccountStore(build_sessionmaker(engine)))
    finally:
        await engine.dispose()
    entry = snapshot.audit_log[-1]
    print(f"Applied {entry.kind} to {snapshot.id} (audit sequence {entry.sequence})")
    print(f"  balance: {snapshot.balance}")
    print(f"  suspended: {snapshot.suspended}")
    return 0


def main() -> int:
    args = _build_parser().parse_args()
    try:
        return asyncio.run(_run(args))
    except StatehubError as exc:
        print(f"apply_account_action rejected: {exc.code}: {exc.message}", file=sys.stderr)
        return 2
    except Exception as exc:  # noqa: BLE001 - surface store failures clearly
        print(f"apply_account_action failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
