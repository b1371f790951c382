from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from statehub.apps.api.deps import Principal, Services, get_services, require_access_key
from statehub.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from statehub.apps.api.response import SuccessEnvelope, success_response
from statehub.persistence.db import pool_stats
from statehub.services import telemetry

router = APIRouter(tags=["health"], responses=DEFAULT_ERROR_RESPONSES)

_METRICS_WINDOW_S = 300


class HealthResponse(BaseModel):
    status: str


class MetricsResponse(BaseModel):
    window_s: int
    availability_pct: float | None
    p95_latency_ms: float | None
    counters: dict[str, int]
    status_by_route: dict[str, dict[str, int]]
    db_pool: dict[str, int | None] | None


@router.get("/health", response_model=SuccessEnvelope[HealthResponse])
async def health(request: Request) -> dict:
    return success_response(request=request, data=HealthResponse(status="ok"))


@router.get("/ops/metrics", response_model=SuccessEnvelope[MetricsResponse])
async def ops_metrics(
    request: Request,
    _principal: Principal = Depends(require_access_key),
    services: Services = Depends(get_services),
) -> dict:
    payload = MetricsResponse(
        window_s=_METRICS_WINDOW_S,
        availability_pct=telemetry.availability(_METRICS_WINDOW_S),
        p95_latency_ms=telemetry.p95_latency(_METRICS_WINDOW_S),
        counters=telemetry.counters_snapshot(),
        status_by_route=telemetry.status_breakdown(_METRICS_WINDOW_S),
        db_pool=pool_stats(services.engine) if services.engine is not None else None,
    )
    return success_response(request=request, data=payload)
