"""TCP stream handling and in-flight request tracking."""

from yeelight_lan.transport.pending import PendingRequest, PendingRequestTable
from yeelight_lan.transport.socket_abstraction import TCPConnection

__all__ = [
    "PendingRequest",
    "PendingRequestTable",
    "TCPConnection",
]
