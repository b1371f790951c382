from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
import math
import time
from typing import Deque


@dataclass(frozen=True)
class RouteSample:
    ts: float
    route: str
    status_code: int
    latency_ms: float


# Bounded so a long-lived process keeps a fixed memory footprint.
_route_samples: Deque[RouteSample] = deque(maxlen=20000)
_counters: Counter[str] = Counter()


def record_request(*, route: str, status_code: int, latency_ms: float) -> None:
    _route_samples.append(RouteSample(ts=time.time(), route=route, status_code=status_code, latency_ms=latency_ms))


def increment_counter(name: str, value: int = 1) -> None:
    # Account action outcomes and conflict retries land here.
    _counters[name] += value


def counters_snapshot() -> dict[str, int]:
    return dict(sorted(_counters.items()))


def _recent(window_s: int, route: str | None = None) -> list[RouteSample]:
    cutoff = time.time() - window_s
    return [
        sample
        for sample in _route_samples
        if sample.ts >= cutoff and (route is None or sample.route == route)
    ]


def availability(window_s: int) -> float | None:
    """Percentage of requests in the window that did not end in a 5xx."""
    samples = _recent(window_s)
    if not samples:
        return None
    healthy = sum(1 for sample in samples if sample.status_code < 500)
    return healthy * 100.0 / len(samples)


def p95_latency(window_s: int, *, route: str | None = None) -> float | None:
    latencies = sorted(sample.latency_ms for sample in _recent(window_s, route))
    if not latencies:
        return None
    return latencies[max(0, math.ceil(0.95 * len(latencies)) - 1)]


def status_breakdown(window_s: int) -> dict[str, dict[str, int]]:
    # route -> {"2xx": n, "4xx": n, ...}; 409s here mean conflict retries ran out.
    breakdown: dict[str, Counter[str]] = {}
    for sample in _recent(window_s):
        family = f"{sample.status_code // 100}xx"
        breakdown.setdefault(sample.route, Counter())[family] += 1
    return {route: dict(families) for route, families in sorted(breakdown.items())}


def reset() -> None:
    _route_samples.clear()
    _counters.clear()
