"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behavior import and increment them.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
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
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # user|ip
)

TOKEN_BLACKLIST_CHECKS = Counter(
    "token_blacklist_checks_total",
    "Token blacklist lookups by result",
    ["result"],  # revoked|valid
)

SIGN_INS = Counter(
    "sign_ins_total",
    "Sign-in attempts by provider and outcome",
    ["provider", "outcome"],  # password|google, ok|failed
)

# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------

APPROVALS = Counter(
    "approvals_total",
    "Approval workflow runs by outcome",
    # ok|rejected|failed|compensated|partial
    ["outcome"],
)

GROUP_FEED_SUBSCRIBERS = Gauge(
    "group_feed_subscribers",
    "Open live subscriptions to group documents",
)

RECEIPTS_SUBMITTED = Counter(
    "receipts_submitted_total",
    "Simulated receipt submissions by content kind",
    ["kind"],  # image|pdf
)
