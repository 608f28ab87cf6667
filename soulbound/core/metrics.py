"""Application metrics using the Prometheus client library.

One inventory of everything the service measures.  Other modules import
the specific metric they own and increment/observe it at the point of
action.

Counters only go up (issued certificates, rejected operations), gauges
go up and down (in-flight requests), histograms bucket observations so
Prometheus can compute percentiles:

  histogram_quantile(0.95, rate(http_request_duration_seconds_bucket[5m]))

Registry counters are labelled by outcome rather than by caller: the
caller address is unbounded cardinality and belongs in logs, not labels.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Registry calls are in-process map lookups; pinning uploads are the
    # slow tail (seconds).  500ms is the p95 SLO target.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Registry metrics (populated by soulbound.services.registry)
# ---------------------------------------------------------------------------

REGISTRY_OPERATIONS = Counter(
    "registry_operations_total",
    "State-mutating registry operations by outcome",
    ["operation", "outcome"],  # outcome: "ok" or an error code
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates minted since process start",
)

CERTIFICATES_REVOKED = Counter(
    "certificates_revoked_total",
    "Certificates revoked since process start",
)

# ---------------------------------------------------------------------------
# Supporting services
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "caller" or "ip"
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

PINNING_UPLOADS = Counter(
    "pinning_uploads_total",
    "Uploads to the content-addressed store by kind and outcome",
    ["kind", "outcome"],  # kind: "file" | "json"; outcome: "ok" | "error"
)
