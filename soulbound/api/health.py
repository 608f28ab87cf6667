"""Liveness, readiness and SLO status.

/health answers "is the process alive, and how is it doing": it always
returns 200, with ``status`` set to "degraded" when a dependency check
fails.  /ready answers "may the load balancer send traffic here".

SLO figures are computed from this process's Prometheus samples, so
each replica reports its own view since its last restart.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from prometheus_client import REGISTRY

from soulbound.api.dependencies import get_registry
from soulbound.core.slo import evaluate_availability, evaluate_latency, evaluate_pinning
from soulbound.db.redis import redis_pool
from soulbound.services.registry import CertificateRegistry

router = APIRouter(tags=["health"])


def _sum_counter(metric_name: str, label_filter: dict | None = None) -> float:
    """Sum a counter's samples across every label combination matching the filter."""
    total = 0.0
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name != metric_name:
                continue
            if label_filter and not all(
                sample.labels.get(k) == v for k, v in label_filter.items()
            ):
                continue
            total += sample.value
    return total


def _estimate_p95_ms() -> float:
    """Interpolate p95 from the request-duration histogram buckets.

    Buckets are summed across endpoints first, then walked like
    PromQL's histogram_quantile.
    """
    buckets: dict[float, float] = {}
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name != "http_request_duration_seconds_bucket":
                continue
            bound = float(sample.labels["le"])
            buckets[bound] = buckets.get(bound, 0.0) + sample.value

    total = buckets.get(float("inf"), 0.0)
    if total == 0:
        return 0.0

    rank = 0.95 * total
    lower_bound, lower_count = 0.0, 0.0
    for bound in sorted(buckets):
        count = buckets[bound]
        if count >= rank:
            if bound == float("inf"):
                return lower_bound * 1000
            span = count - lower_count
            fraction = (rank - lower_count) / span if span else 1.0
            return (lower_bound + (bound - lower_bound) * fraction) * 1000
        lower_bound, lower_count = bound, count
    return lower_bound * 1000


@router.get("/health")
async def health(
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    total_all = _sum_counter("http_requests_total")
    total_5xx = sum(
        _sum_counter("http_requests_total", {"status_code": str(code)})
        for code in range(500, 512)
    )
    statuses = [
        evaluate_availability(int(total_all), int(total_5xx)),
        evaluate_latency(_estimate_p95_ms()),
        evaluate_pinning(
            int(_sum_counter("pinning_uploads_total")),
            int(_sum_counter("pinning_uploads_total", {"outcome": "error"})),
        ),
    ]

    return {
        "status": overall,
        "checks": checks,
        "registry": {
            "name": registry.name,
            "symbol": registry.symbol,
            "total_issued": registry.total_issued(),
        },
        "slos": {
            s.slo.name: {
                "current": s.current,
                "target": s.slo.target,
                "healthy": s.healthy,
            }
            for s in statuses
        },
    }


@router.get("/ready")
async def ready() -> Response:
    # Redis is optional (in-memory fallbacks) and the ledger is
    # in-process, so a responding process can take traffic.
    return Response(status_code=200)
