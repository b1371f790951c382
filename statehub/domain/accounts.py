from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


AuditKind = Literal["credit", "debit", "suspend", "reinstate", "rotate-credential"]

SYSTEM_EXECUTOR = "system"

# Ceiling of the signed 64-bit balance and quantity columns.
MAX_BALANCE = 2**63 - 1


@dataclass(frozen=True)
class AuditEntry:
    # Immutable record of one applied account action.
    sequence: int
    occurred_at: datetime
    kind: AuditKind
    justification: str
    executor: str = SYSTEM_EXECUTOR
    quantity: int | None = None
    credential: str | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class AccountSnapshot:
    # Consistent point-in-time view of an account and its full audit log.
    id: str
    email: str
    credential: str
    balance: int
    suspended: bool
    version: int
    audit_log: tuple[AuditEntry, ...] = ()
    external_access_token: str | None = None
    created_at: datetime | None = None

    def next_sequence(self) -> int:
        return len(self.audit_log) + 1


@dataclass(frozen=True)
class AccountChanges:
    # Full post-action values for the mutable account fields.
    balance: int
    suspended: bool
    credential: str
