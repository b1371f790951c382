"""Account action state machine.

Every action runs the same cycle against one consistent account snapshot:
read, validate, compute the new fields and the next audit entry, then hand
both to the store as a single conditional write keyed on the snapshot
version. A version mismatch means another writer got there first; the whole
cycle is re-run from a fresh read a bounded number of times.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import random
from typing import Any, Callable

from statehub.core.config import get_settings
from statehub.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from statehub.domain.accounts import MAX_BALANCE, SYSTEM_EXECUTOR, AccountChanges, AccountSnapshot, AuditEntry
from statehub.domain.actions import (
    AccountAction,
    Credit,
    Debit,
    Reinstate,
    RotateCredential,
    Suspend,
    action_name,
)
from statehub.persistence.repos.base import AccountStore
from statehub.services.credentials import CredentialGenerator, generate_credential
from statehub.services.telemetry import increment_counter


logger = logging.getLogger(__name__)

_DEFAULT_CREDIT_JUSTIFICATION = "Quota added"
_DEFAULT_DEBIT_JUSTIFICATION = "Quota removed"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConflictRetryPolicy:
    max_attempts: int
    backoff_ms: int


def default_conflict_policy() -> ConflictRetryPolicy:
    settings = get_settings()
    return ConflictRetryPolicy(
        max_attempts=settings.action_conflict_max_attempts,
        backoff_ms=settings.action_conflict_backoff_ms,
    )


def _require_amount(value: Any) -> int:
    # Reject bools explicitly; they are ints to Python but never a quota amount.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError("Invalid quota amount: amount must be a positive integer", amount=value)
    if value <= 0:
        raise InvalidArgumentError("Invalid quota amount: amount must be greater than zero", amount=value)
    if value > MAX_BALANCE:
        raise InvalidArgumentError("Invalid quota amount: amount exceeds the quota ceiling", amount=value)
    return value


def _require_justification(value: str | None, *, action: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"Justification is required for {action}", action=action)
    return value.strip()


def plan_action(
    snapshot: AccountSnapshot,
    action: AccountAction,
    *,
    occurred_at: datetime,
    executor: str | None,
    credential_for: Callable[[str], str],
) -> tuple[AccountChanges, AuditEntry]:
    """Validate ``action`` against ``snapshot`` and compute its effect.

    Pure: raises InvalidArgumentError on a violated precondition and never
    touches a store.
    """
    resolved_executor = (executor or "").strip() or SYSTEM_EXECUTOR
    sequence = snapshot.next_sequence()
    balance = snapshot.balance
    suspended = snapshot.suspended
    credential = snapshot.credential

    if isinstance(action, Credit):
        amount = _require_amount(action.amount)
        if balance > MAX_BALANCE - amount:
            raise InvalidArgumentError("Quota ceiling exceeded", balance=balance, amount=amount)
        balance += amount
        entry = AuditEntry(
            sequence=sequence,
            occurred_at=occurred_at,
            kind="credit",
            justification=(action.justification or "").strip() or _DEFAULT_CREDIT_JUSTIFICATION,
            executor=resolved_executor,
            quantity=amount,
        )
    elif isinstance(action, Debit):
        amount = _require_amount(action.amount)
        if balance < amount:
            raise InvalidArgumentError("Insufficient quota", balance=balance, amount=amount)
        balance -= amount
        entry = AuditEntry(
            sequence=sequence,
            occurred_at=occurred_at,
            kind="debit",
            justification=(action.justification or "").strip() or _DEFAULT_DEBIT_JUSTIFICATION,
            executor=resolved_executor,
            quantity=-amount,
        )
    elif isinstance(action, Suspend):
        justification = _require_justification(action.justification, action="suspend")
        suspended = True
        entry = AuditEntry(
            sequence=sequence,
            occurred_at=occurred_at,
            kind="suspend",
            justification=justification,
            executor=resolved_executor,
            expires_at=action.expires_at,
        )
    elif isinstance(action, Reinstate):
        justification = _require_justification(action.justification, action="reinstate")
        suspended = False
        entry = AuditEntry(
            sequence=sequence,
            occurred_at=occurred_at,
            kind="reinstate",
            justification=justification,
            executor=resolved_executor,
            expires_at=action.expires_at,
        )
    elif isinstance(action, RotateCredential):
        justification = _require_justification(action.justification, action="rotate-credential")
        credential = credential_for(snapshot.id)
        entry = AuditEntry(
            sequence=sequence,
            occurred_at=occurred_at,
            kind="rotate-credential",
            justification=justification,
            executor=resolved_executor,
            credential=credential,
        )
    else:
        raise InvalidArgumentError(f"Invalid action: {type(action).__name__}")

    return AccountChanges(balance=balance, suspended=suspended, credential=credential), entry


class AccountActionService:
    def __init__(
        self,
        store: AccountStore,
        *,
        credential_secret: str | None = None,
        credential_generator: CredentialGenerator | None = None,
        time_provider: Callable[[], datetime] | None = None,
        retry_policy: ConflictRetryPolicy | None = None,
    ) -> None:
        self._store = store
        self._credential_secret = credential_secret or get_settings().credential_secret
        self._generate = credential_generator or generate_credential
        # Allow time injection for deterministic audit timestamps in tests.
        self._time_provider = time_provider or _utc_now
        self._retry_policy = retry_policy or default_conflict_policy()

    async def apply_action(
        self,
        account_id: str,
        action: AccountAction,
        *,
        executor: str | None = None,
    ) -> AccountSnapshot:
        if not account_id:
            raise InvalidArgumentError("Account ID is required")
        name = action_name(action)
        max_attempts = max(self._retry_policy.max_attempts, 1)
        attempt = 1
        while True:
            try:
                updated = await self._apply_once(account_id, action, executor=executor)
            except ConflictError:
                increment_counter("account_action_conflicts_total")
                if attempt >= max_attempts:
                    logger.warning(
                        "account_action_conflict_exhausted account_id=%s action=%s attempts=%s",
                        account_id,
                        name,
                        attempt,
                    )
                    raise
                logger.warning(
                    "account_action_conflict account_id=%s action=%s attempt=%s",
                    account_id,
                    name,
                    attempt,
                )
                jitter = random.uniform(0.5, 1.5)
                await asyncio.sleep((self._retry_policy.backoff_ms / 1000.0) * (2 ** (attempt - 1)) * jitter)
                attempt += 1
                continue
            increment_counter(f"account_action_{name}_total")
            logger.info(
                "account_action_applied account_id=%s action=%s sequence=%s",
                account_id,
                name,
                len(updated.audit_log),
            )
            return updated

    async def _apply_once(
        self,
        account_id: str,
        action: AccountAction,
        *,
        executor: str | None,
    ) -> AccountSnapshot:
        snapshot = await self._store.get(account_id)
        if snapshot is None:
            raise NotFoundError("Account not found", account_id=account_id)
        changes, entry = plan_action(
            snapshot,
            action,
            occurred_at=self._time_provider(),
            executor=executor,
            credential_for=lambda subject: self._generate(subject, self._credential_secret),
        )
        return await self._store.commit_action(snapshot, changes, entry)
