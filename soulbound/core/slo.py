"""SLO (Service Level Objective) definitions for the registry service.

SLI: a measurable property (share of non-5xx responses, p95 latency,
share of pinning uploads that succeed).
SLO: the internal target for that property.

The error budget is the gap between the two: at 99.5% availability,
50 of every 10,000 requests may fail before the objective is breached.
Registry rejections (409 already revoked, 403 unauthorized) are
correct answers, not failures, and do not consume the budget; only
5xx responses do.

Evaluation functions are pure (numbers in, status out) so /health can
feed them from in-process Prometheus samples and tests can feed them
literals.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SLODefinition:
    """A single SLO target.

    name:        Identifier reported by /health
    description: What this SLO measures
    target:      Target percentage (99.5 means 99.5%)
    window:      Rolling evaluation window ("30d")
    """

    name: str
    description: str
    target: float
    window: str


@dataclass(frozen=True, slots=True)
class SLOStatus:
    slo: SLODefinition
    current: float
    budget_remaining: float
    healthy: bool


AVAILABILITY_SLO = SLODefinition(
    name="availability",
    description="Percentage of non-5xx responses",
    target=99.5,
    window="30d",
)

LATENCY_SLO = SLODefinition(
    name="latency_p95",
    description="95th percentile response time under 500ms",
    target=95.0,
    window="30d",
)

PINNING_SLO = SLODefinition(
    name="pinning_success",
    description="Percentage of document and metadata uploads the pinning service accepts",
    target=99.0,
    window="7d",
)

ALL_SLOS = [AVAILABILITY_SLO, LATENCY_SLO, PINNING_SLO]

_LATENCY_THRESHOLD_MS = 500.0


def _status(slo: SLODefinition, current: float) -> SLOStatus:
    return SLOStatus(
        slo=slo,
        current=round(current, 3),
        budget_remaining=round(current - slo.target, 3),
        healthy=current >= slo.target,
    )


def _good_share(total: int, bad: int) -> float:
    # No traffic means nothing has failed yet.
    if total == 0:
        return 100.0
    return (total - bad) / total * 100


def evaluate_availability(total_requests: int, error_requests: int) -> SLOStatus:
    return _status(AVAILABILITY_SLO, _good_share(total_requests, error_requests))


def evaluate_latency(p95_ms: float) -> SLOStatus:
    """Map a p95 latency onto "percent of requests under the threshold".

    At or under the threshold the share is at least 95% (scaling to 100%
    as p95 approaches zero); above it the share falls off linearly.
    """
    excess = (p95_ms - _LATENCY_THRESHOLD_MS) / _LATENCY_THRESHOLD_MS
    if excess <= 0:
        current = min(100.0, 95.0 - excess * 5.0)
    else:
        current = max(0.0, 95.0 - excess * 95.0)
    return _status(LATENCY_SLO, current)


def evaluate_pinning(total_uploads: int, failed_uploads: int) -> SLOStatus:
    return _status(PINNING_SLO, _good_share(total_uploads, failed_uploads))
