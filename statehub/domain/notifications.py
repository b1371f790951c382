from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


Classification = Literal["info", "warning", "error", "success"]
CLASSIFICATIONS: tuple[str, ...] = ("info", "warning", "error", "success")

MarkEffect = Literal["read", "deleted"]
MARK_EFFECTS: tuple[str, ...] = ("read", "deleted")

FeedScope = Literal["private", "broadcast"]


@dataclass(frozen=True)
class BroadcastNotice:
    # Shared notification; per-account state lives in the overlay, never here.
    id: str
    classification: Classification
    body: str
    created_at: datetime
    expires_at: datetime | None = None


@dataclass(frozen=True)
class PrivateNotice:
    id: str
    owner_id: str
    classification: Classification
    body: str
    created_at: datetime
    expires_at: datetime | None = None
    read: bool = False
    deleted: bool = False


@dataclass(frozen=True)
class OverlaySets:
    # Absent overlay records are represented by the empty instance.
    read: frozenset[str] = frozenset()
    deleted: frozenset[str] = frozenset()


@dataclass(frozen=True)
class FeedItem:
    id: str
    scope: FeedScope
    classification: Classification
    body: str
    created_at: datetime
    read: bool
    expires_at: datetime | None = None
