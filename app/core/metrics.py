"""Prometheus metrics for user-console.

Every metric the service exposes is declared here; the modules that own
the behavior import the one they need and bump it at the point of action.

Two groups:

  HTTP metrics: filled in by MetricsMiddleware for every inbound request
  to the console itself.

  Users-API metrics: describe the console's side of the conversation with
  the upstream service.  ``users_api_requests_total`` split by outcome is
  the quickest way to tell "the console is broken" apart from "the users
  API is broken", and ``malformed_responses_total`` is the early warning
  that the upstream changed its response shape.
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
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Users API metrics
# ---------------------------------------------------------------------------

USERS_API_REQUESTS = Counter(
    "users_api_requests_total",
    "Calls made to the upstream users API",
    ["operation", "outcome"],  # operation: get_users|add_user, outcome: ok|error
)

USERS_API_DURATION = Histogram(
    "users_api_request_duration_seconds",
    "Upstream users API call duration in seconds",
    ["operation"],
    # Upstream calls cross the network, so the tail is longer than ours
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

MALFORMED_RESPONSES = Counter(
    "malformed_responses_total",
    "User-list bodies that could not be interpreted",
    ["body_type"],
)

TOASTS_SHOWN = Counter(
    "toasts_shown_total",
    "Toast notifications raised, by kind",
    ["kind"],
)

USER_LIST_SIZE = Gauge(
    "user_list_size",
    "Number of users in the canonical list after the last replacement",
)
