"""Closed set of account actions accepted by the account state machine.

Each action is a frozen dataclass; ``AccountAction`` is the union the state
machine dispatches on. ``parse_action`` is the only place wire-level action
names are interpreted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from statehub.core.errors import InvalidArgumentError


@dataclass(frozen=True)
class Credit:
    amount: Any
    justification: str | None = None


@dataclass(frozen=True)
class Debit:
    amount: Any
    justification: str | None = None


@dataclass(frozen=True)
class Suspend:
    justification: str | None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class Reinstate:
    justification: str | None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class RotateCredential:
    justification: str | None


AccountAction = Union[Credit, Debit, Suspend, Reinstate, RotateCredential]

ACTION_NAMES: dict[str, type] = {
    "credit": Credit,
    "debit": Debit,
    "suspend": Suspend,
    "reinstate": Reinstate,
    "rotate-credential": RotateCredential,
}

# Names used by older internal callers.
LEGACY_ACTION_NAMES: dict[str, str] = {
    "addquota": "credit",
    "removequota": "debit",
    "ban": "suspend",
    "unban": "reinstate",
    "updatetoken": "rotate-credential",
}


def canonical_action_name(name: str | None) -> str:
    normalized = (name or "").strip().lower()
    normalized = LEGACY_ACTION_NAMES.get(normalized, normalized)
    if normalized not in ACTION_NAMES:
        raise InvalidArgumentError(f"Invalid action: {name}", action=name)
    return normalized


def parse_action(
    name: str | None,
    *,
    amount: Any = None,
    justification: str | None = None,
    expires_at: datetime | None = None,
) -> AccountAction:
    # Build the typed action; preconditions are checked by the state machine.
    canonical = canonical_action_name(name)
    action_type = ACTION_NAMES[canonical]
    if action_type in (Credit, Debit):
        return action_type(amount=amount, justification=justification)
    if action_type in (Suspend, Reinstate):
        return action_type(justification=justification, expires_at=expires_at)
    return RotateCredential(justification=justification)


def action_name(action: AccountAction) -> str:
    for name, action_type in ACTION_NAMES.items():
        if isinstance(action, action_type):
            return name
    raise InvalidArgumentError(f"Invalid action: {type(action).__name__}")
