"""Prometheus counters and histograms exported on ``/metrics``.

HTTP metrics are recorded by the access-log middleware. Lifecycle outcomes are
recorded by :class:`plateshare.lifecycle.manager.LifecycleManager`.
Notification results come from the notification service, plus failures the
manager catches after commit.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "plateshare_http_requests_total",
    "HTTP requests served, by method, route path and response status",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "plateshare_http_request_duration_seconds",
    "Time spent serving an HTTP request, in seconds",
    ["method", "path"],
)

LIFECYCLE_OPERATIONS = Counter(
    "plateshare_lifecycle_operations_total",
    "Food request create/update/cancel attempts, by operation and outcome "
    "(success, error or the rejecting error kind)",
    ["operation", "outcome"],
)

NOTIFICATIONS = Counter(
    "plateshare_notifications_total",
    "Inbox notifications, by notification kind and result (delivered, skipped or failed)",
    ["kind", "result"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "LIFECYCLE_OPERATIONS",
    "NOTIFICATIONS",
]
