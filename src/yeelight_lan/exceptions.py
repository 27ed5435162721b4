"""Exception hierarchy for the Yeelight LAN client.

All errors raised by this package inherit from YeelightError so callers can
catch everything with one clause while still handling specific failures.
"""

from __future__ import annotations


class YeelightError(Exception):
    """Base exception for all Yeelight LAN client errors."""


class ConfigurationError(YeelightError):
    """Device announcement is malformed or missing required fields.

    Raised while building a DeviceDescriptor. Never retried.

    Attributes:
        reason: Specific failure reason (e.g., "bad_status_line", "missing_fields")

    """

    def __init__(self, reason: str, detail: str = "") -> None:
        """Initialize configuration error with reason and optional detail."""
        self.reason: str = reason
        self.detail: str = detail
        message = f"Invalid device announcement: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DeviceConnectionError(YeelightError):
    """Transport failure talking to a device (connect, write, stream lost).

    Note: Named DeviceConnectionError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        device: Human-readable device label ("name (id) at host:port")
        reason: Specific failure reason

    """

    def __init__(self, device: str, reason: str) -> None:
        """Initialize connection error naming the device."""
        self.device: str = device
        self.reason: str = reason
        super().__init__(f"Connection error for device {device}: {reason}")


class ConnectionClosedError(DeviceConnectionError):
    """Pending request abandoned because its stream was closed or replaced."""

    def __init__(self, device: str, request_id: int) -> None:
        """Initialize closed-connection error for a specific request."""
        self.request_id: int = request_id
        super().__init__(device, f"connection closed before reply to request {request_id}")


class ProtocolError(YeelightError):
    """Inbound line could not be decoded as a response object.

    Logged and dropped by the read loop, never surfaced to a waiting caller.

    Attributes:
        reason: Specific failure reason (e.g., "invalid_json", "not_an_object")
        line_preview: First 64 characters of the offending line

    """

    def __init__(self, reason: str, line: str = "") -> None:
        """Initialize protocol error with reason and a bounded line preview."""
        self.reason: str = reason
        self.line_preview: str = line[:64]
        super().__init__(f"Protocol error: {reason}")


class RequestTimeoutError(YeelightError):
    """No reply arrived for a request within its timeout.

    Attributes:
        device: Human-readable device label
        request_id: Request id that timed out
        method: Method name of the request
        timeout_seconds: Timeout value that was exceeded

    """

    def __init__(self, device: str, request_id: int, method: str, timeout_seconds: float) -> None:
        """Initialize request timeout error."""
        self.device: str = device
        self.request_id: int = request_id
        self.method: str = method
        self.timeout_seconds: float = timeout_seconds
        super().__init__(
            f"Timeout waiting for response to {method} (request {request_id}) "
            f"from device {device} after {timeout_seconds}s",
        )


class ValidationError(YeelightError, ValueError):
    """Command parameter outside its documented range.

    Raised synchronously, before any request is built or bytes are sent.

    Attributes:
        field: Name of the offending parameter
        value: Rejected value

    """

    def __init__(self, field: str, value: object, message: str) -> None:
        """Initialize validation error for a single parameter."""
        self.field: str = field
        self.value: object = value
        super().__init__(message)


class CapacityError(YeelightError):
    """Too many requests are already awaiting replies from the device.

    Attributes:
        device: Human-readable device label
        limit: Pending request ceiling that was reached

    """

    def __init__(self, device: str, limit: int) -> None:
        """Initialize capacity error."""
        self.device: str = device
        self.limit: int = limit
        super().__init__(f"Request queue is full for device {device} ({limit} pending); cannot send more requests")
