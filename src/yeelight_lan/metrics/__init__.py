"""Metrics module."""

from .registry import (
    record_connection,
    record_connection_state,
    record_discovery_devices,
    record_discovery_reply,
    record_pending_requests,
    record_request,
    record_request_latency,
    record_response_dropped,
    start_metrics_server,
)

__all__ = [
    "record_connection",
    "record_connection_state",
    "record_discovery_devices",
    "record_discovery_reply",
    "record_pending_requests",
    "record_request",
    "record_request_latency",
    "record_response_dropped",
    "start_metrics_server",
]
