"""Prometheus metrics registry for device connections and discovery."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

# Request/response metrics
yeelight_request_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_request_total",
    "Total command requests by final outcome",
    ["device_id", "method", "outcome"],
)

yeelight_request_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "yeelight_request_latency_seconds",
    "Request round-trip latency in seconds",
    ["device_id"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

yeelight_pending_requests: Final = Gauge(  # type: ignore[assignment]
    "yeelight_pending_requests",
    "Requests currently awaiting a reply",
    ["device_id"],
)

yeelight_response_dropped_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_response_dropped_total",
    "Inbound lines dropped without resolving a request",
    ["device_id", "reason"],
)

# Connection metrics
yeelight_connection_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_connection_total",
    "Total connection attempts",
    ["device_id", "outcome"],
)

yeelight_connection_state: Final = Gauge(  # type: ignore[assignment]
    "yeelight_connection_state",
    "Current connection state",
    ["device_id", "state"],
)

# Discovery metrics
yeelight_discovery_reply_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_discovery_reply_total",
    "Discovery replies by outcome",
    ["outcome"],
)

yeelight_discovery_devices: Final = Gauge(  # type: ignore[assignment]
    "yeelight_discovery_devices",
    "Devices found by the most recent discovery run",
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_request(device_id: str, method: str, outcome: str) -> None:
    """Record a request's final outcome (ok, timeout, write_error, closed)."""
    yeelight_request_total.labels(device_id=device_id, method=method, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_request_latency(device_id: str, latency_seconds: float) -> None:
    """Record request latency."""
    yeelight_request_latency_seconds.labels(device_id=device_id).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_pending_requests(device_id: str, count: int) -> None:
    """Record the current pending request count."""
    yeelight_pending_requests.labels(device_id=device_id).set(count)  # type: ignore[no-untyped-call]


def record_response_dropped(device_id: str, reason: str) -> None:
    """Record an inbound line dropped (invalid_json, missing_id, no_match)."""
    yeelight_response_dropped_total.labels(device_id=device_id, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_connection(device_id: str, outcome: str) -> None:
    """Record a connection attempt."""
    yeelight_connection_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_connection_state(device_id: str, state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in ["disconnected", "connected"]:
        value = 1 if s == state else 0
        yeelight_connection_state.labels(device_id=device_id, state=s).set(value)  # type: ignore[no-untyped-call]


def record_discovery_reply(outcome: str) -> None:
    """Record a discovery datagram (added, duplicate, invalid)."""
    yeelight_discovery_reply_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_discovery_devices(count: int) -> None:
    """Record how many devices the latest discovery run found."""
    yeelight_discovery_devices.set(count)  # type: ignore[no-untyped-call]
