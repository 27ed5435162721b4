"""Per-device connection: stream ownership, request correlation, typed commands.

A DeviceConnection owns at most one TCP stream to its device. A background
read loop reassembles reply lines and hands each reply to whichever pending
request carries the same id. Typed command methods validate their arguments
immediately (raising ValidationError or CapacityError before anything is
awaited) and return an awaitable for the network round trip.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Sequence
from types import TracebackType
from typing import Self

from yeelight_lan.config import ClientConfig
from yeelight_lan.const import DEFAULT_DURATION_MS, DEFAULT_EFFECT
from yeelight_lan.correlation import correlation_context
from yeelight_lan.exceptions import (
    CapacityError,
    ConnectionClosedError,
    DeviceConnectionError,
    ProtocolError,
    RequestTimeoutError,
    YeelightError,
)
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.metrics import registry
from yeelight_lan.protocol.announcement import DeviceDescriptor, parse_announcement
from yeelight_lan.protocol.line_framer import LineFramer
from yeelight_lan.protocol.messages import (
    Method,
    ParamValue,
    PowerMode,
    Prop,
    Request,
    Response,
    decode_response,
)
from yeelight_lan.protocol.validation import (
    validate_brightness,
    validate_color_temperature,
    validate_duration,
    validate_effect,
    validate_hue,
    validate_name,
    validate_power_mode,
    validate_property_names,
    validate_rgb,
    validate_saturation,
)
from yeelight_lan.transport.pending import PendingRequest, PendingRequestTable
from yeelight_lan.transport.socket_abstraction import TCPConnection

__all__ = ["DeviceConnection"]


class DeviceConnection:
    """Stateful connection to a single device.

    Construction only parses and stores the descriptor; no network activity
    happens until connect() or the first request.

    Attributes:
        config: Client configuration (timeouts, logging, limits)

    """

    def __init__(self, descriptor: DeviceDescriptor, config: ClientConfig | None = None) -> None:
        """Initialize the connection for an already-parsed descriptor.

        Args:
            descriptor: Device identity and capabilities
            config: Client configuration (defaults to ClientConfig())

        """
        self.config: ClientConfig = config or ClientConfig()
        self._descriptor: DeviceDescriptor = descriptor
        self._logger = get_logger(__name__, self.config.logging)
        self._conn: TCPConnection | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._framer: LineFramer = LineFramer()
        self._pending: PendingRequestTable = PendingRequestTable(limit=self.config.max_pending_requests)
        self._stream_lock: asyncio.Lock = asyncio.Lock()
        self._healthy: bool = False

        self._logger.debug(
            "DeviceConnection initialized for %s",
            descriptor.label,
            extra={"device_id": descriptor.id, "model": descriptor.model},
        )

    @classmethod
    def from_announcement(cls, payload: bytes | str, config: ClientConfig | None = None) -> DeviceConnection:
        """Build a connection from a raw announcement.

        Raises:
            ConfigurationError: Announcement is malformed or incomplete

        """
        return cls(parse_announcement(payload), config)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def descriptor(self) -> DeviceDescriptor:
        """Device identity, capabilities and announcement-time state snapshot."""
        return self._descriptor

    @property
    def device_id(self) -> str:
        """Unique device id."""
        return self._descriptor.id

    @property
    def connected(self) -> bool:
        """True while a usable stream is open."""
        return self._conn is not None and self._conn.is_usable

    @property
    def is_healthy(self) -> bool:
        """Outcome of the most recent check_health() probe (False before any probe)."""
        return self._healthy

    @property
    def pending_count(self) -> int:
        """Number of requests awaiting a reply."""
        return len(self._pending)

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self.connected else "disconnected"
        return f"DeviceConnection({self._descriptor.label}, {status})"

    # ------------------------------------------------------------------
    # Stream lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> Self:
        """Open a fresh stream, replacing (never reusing) any existing one.

        Outstanding requests on a replaced stream fail with ConnectionClosedError.

        Raises:
            DeviceConnectionError: Connection could not be established

        """
        async with self._stream_lock:
            await self._open_stream()
        return self

    async def close(self) -> None:
        """Close the stream and fail every outstanding request. Idempotent."""
        async with self._stream_lock:
            await self._teardown_stream("closed")
        self._healthy = False

    async def __aenter__(self) -> Self:
        """Connect on entering an async with block."""
        return await self.connect()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close on leaving an async with block."""
        await self.close()

    async def _ensure_stream(self) -> TCPConnection:
        """Return the current stream if usable, otherwise open a new one."""
        conn = self._conn
        if conn is not None and conn.is_usable:
            return conn
        async with self._stream_lock:
            conn = self._conn
            if conn is not None and conn.is_usable:
                return conn
            self._logger.info(
                "Re-establishing stream to %s",
                self._descriptor.label,
                extra={"device_id": self.device_id},
            )
            return await self._open_stream()

    async def _open_stream(self) -> TCPConnection:
        """Replace the current stream with a new one. Caller holds _stream_lock."""
        await self._teardown_stream("replaced")

        descriptor = self._descriptor
        timeouts = self.config.timeouts
        conn = TCPConnection(
            descriptor.host,
            descriptor.port,
            connect_timeout=timeouts.connect_timeout,
            io_timeout=timeouts.io_timeout,
            max_read_size=self.config.read_chunk_size,
            logging_config=self.config.logging,
        )
        self._logger.info(
            "Connecting to device at %s",
            descriptor.address,
            extra={"device_id": descriptor.id},
        )
        if not await conn.connect():
            registry.record_connection(descriptor.id, "failed")
            reason = f"failed to connect to {descriptor.address}"
            if conn.last_error is not None:
                reason = f"{reason}: {conn.last_error!r}"
            raise DeviceConnectionError(descriptor.label, reason) from conn.last_error

        self._conn = conn
        self._framer.reset()
        self._read_task = asyncio.create_task(self._read_loop(conn), name=f"yeelight-read-{descriptor.id}")
        registry.record_connection(descriptor.id, "success")
        registry.record_connection_state(descriptor.id, "connected")
        self._logger.info("Connected to %s", descriptor.label, extra={"device_id": descriptor.id})
        return conn

    async def _teardown_stream(self, reason: str) -> None:
        """Stop the read loop, close the stream and fail outstanding requests."""
        task, self._read_task = self._read_task, None
        conn, self._conn = self._conn, None

        if task is not None and task is not asyncio.current_task() and not task.done():
            _ = task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if conn is not None:
            await conn.close()
            registry.record_connection_state(self.device_id, "disconnected")

        label = self._descriptor.label
        failed = self._pending.fail_all(lambda request_id: ConnectionClosedError(label, request_id))
        if failed:
            self._logger.warning(
                "Failed %d outstanding request(s) for %s: stream %s",
                failed,
                label,
                reason,
                extra={"device_id": self.device_id, "reason": reason},
            )
            registry.record_pending_requests(self.device_id, len(self._pending))

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def _read_loop(self, conn: TCPConnection) -> None:
        """Read until end-of-stream or error, dispatching every complete line."""
        try:
            while True:
                data = await conn.recv()
                if data is None:
                    break
                for line in self._framer.feed(data):
                    self._dispatch_line(line)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Errors end the loop; they are never raised to request callers.
            self._logger.exception(
                "Read loop for %s crashed",
                self._descriptor.label,
                extra={"device_id": self.device_id},
            )

        self._logger.info(
            "Stream to %s ended",
            self._descriptor.label,
            extra={"device_id": self.device_id},
        )
        # A sender may reopen the stream while this one is closing
        async with self._stream_lock:
            if self._conn is conn:
                await self._teardown_stream("ended")

    def _dispatch_line(self, line: str) -> None:
        """Route one reply line to its pending request, or drop it."""
        device_id = self.device_id
        try:
            response = decode_response(line)
        except ProtocolError as e:
            registry.record_response_dropped(device_id, e.reason)
            self._logger.warning(
                "Dropping undecodable line from %s: %s",
                self._descriptor.label,
                e.reason,
                extra={"device_id": device_id, "line": e.line_preview},
            )
            return

        if response.id is None:
            registry.record_response_dropped(device_id, "missing_id")
            if response.method is not None:
                self._logger.debug(
                    "Notification %s from %s: %s",
                    response.method,
                    self._descriptor.label,
                    response.params,
                    extra={"device_id": device_id},
                )
            else:
                self._logger.error(
                    "Response does not contain an ID: %s",
                    line,
                    extra={"device_id": device_id},
                )
            return

        pending = self._pending.resolve(response)
        if pending is None:
            registry.record_response_dropped(device_id, "no_match")
            self._logger.info(
                "Response %s has no pending request (timed out or unsolicited), dropping",
                response.id,
                extra={"device_id": device_id},
            )
            return

        registry.record_request_latency(device_id, time.monotonic() - pending.sent_at)
        registry.record_pending_requests(device_id, len(self._pending))
        self._logger.debug(
            "Response %s: %s",
            response.id,
            line,
            extra={"device_id": device_id, "method": pending.request.method},
        )

    # ------------------------------------------------------------------
    # Request correlation
    # ------------------------------------------------------------------

    def _check_capacity(self) -> None:
        if self._pending.is_full:
            raise CapacityError(self._descriptor.label, self._pending.limit)

    def send_request(
        self,
        method: str,
        params: Sequence[ParamValue] = (),
        timeout: float | None = None,
    ) -> Awaitable[Response]:
        """Send a raw command and return an awaitable for its reply.

        Args:
            method: Method name (see Method)
            params: Ordered parameter list
            timeout: Reply timeout in seconds (defaults to the configured request timeout)

        Returns:
            Awaitable resolving to the device's Response

        Raises:
            CapacityError: Raised immediately when the pending ceiling is reached
            DeviceConnectionError: (awaited) stream could not be opened or written
            ConnectionClosedError: (awaited) stream closed before the reply arrived
            RequestTimeoutError: (awaited) no reply within the timeout

        """
        self._check_capacity()
        request = Request(method=str(method), params=list(params))
        if timeout is None:
            timeout = self.config.timeouts.request_timeout
        return self._execute(request, timeout)

    async def _execute(self, request: Request, timeout: float) -> Response:
        """Register, transmit and await one request. Exactly one outcome per call."""
        device_id = self.device_id
        label = self._descriptor.label

        with correlation_context():
            conn = await self._ensure_stream()
            # Capacity may have been used up while the stream was being opened
            self._check_capacity()

            # Register before writing so a fast reply always finds its entry
            pending = self._pending.register(request)
            registry.record_pending_requests(device_id, len(self._pending))
            try:
                if not await conn.send(request.encode()):
                    _abandon(pending)
                    registry.record_request(device_id, request.method, "write_error")
                    raise DeviceConnectionError(label, f"write failed: {conn.last_error!r}") from conn.last_error

                self._logger.debug(
                    "Request %s: %s %s",
                    pending.request_id,
                    request.method,
                    request.params,
                    extra={"device_id": device_id},
                )

                try:
                    response = await asyncio.wait_for(pending.future, timeout=timeout)
                except TimeoutError:
                    registry.record_request(device_id, request.method, "timeout")
                    self._logger.warning(
                        "Timeout waiting for response %s (%s) from %s",
                        pending.request_id,
                        request.method,
                        label,
                        extra={"device_id": device_id, "timeout": timeout},
                    )
                    raise RequestTimeoutError(label, pending.request_id, request.method, timeout) from None
                except ConnectionClosedError:
                    registry.record_request(device_id, request.method, "closed")
                    raise
            finally:
                _ = self._pending.discard(pending.request_id)
                registry.record_pending_requests(device_id, len(self._pending))

        registry.record_request(device_id, request.method, "ok")
        return response

    # ------------------------------------------------------------------
    # Typed commands
    # ------------------------------------------------------------------

    def get_properties(self, properties: Sequence[str]) -> Awaitable[dict[str, ParamValue]]:
        """Query live property values.

        The reply's result list is matched to the requested names by position,
        up to the shorter of the two; missing trailing values are omitted.

        Args:
            properties: One or more property names (see Prop)

        Returns:
            Awaitable resolving to {property name: value}

        """
        names = validate_property_names(properties)
        self._check_capacity()
        return self._get_properties(names)

    async def _get_properties(self, names: list[str]) -> dict[str, ParamValue]:
        response = await self._execute(
            Request(method=Method.GET_PROP.value, params=list(names)),
            self.config.timeouts.request_timeout,
        )
        if not response.result:
            return {}
        return dict(zip(names, response.result, strict=False))

    def set_power(
        self,
        power: bool,
        effect: str = DEFAULT_EFFECT,
        duration: int = DEFAULT_DURATION_MS,
        mode: PowerMode | int | str = PowerMode.NORMAL,
    ) -> Awaitable[Response]:
        """Switch the light on or off.

        Args:
            power: True for on, False for off
            effect: "smooth" or "sudden"
            duration: Transition time in milliseconds
            mode: Mode to enter when switching on (see PowerMode)

        """
        params: list[ParamValue] = [
            "on" if power else "off",
            validate_effect(effect),
            validate_duration(duration),
            validate_power_mode(mode),
        ]
        return self.send_request(Method.SET_POWER, params)

    def set_rgb(
        self,
        rgb: int,
        effect: str = DEFAULT_EFFECT,
        duration: int = DEFAULT_DURATION_MS,
    ) -> Awaitable[Response]:
        """Set color as a 24-bit RGB integer (0x000000 to 0xFFFFFF)."""
        params: list[ParamValue] = [validate_rgb(rgb), validate_effect(effect), validate_duration(duration)]
        return self.send_request(Method.SET_RGB, params)

    def set_hsv(
        self,
        hue: int,
        sat: int,
        effect: str = DEFAULT_EFFECT,
        duration: int = DEFAULT_DURATION_MS,
    ) -> Awaitable[Response]:
        """Set color by hue (0-359) and saturation (0-100)."""
        params: list[ParamValue] = [
            validate_hue(hue),
            validate_saturation(sat),
            validate_effect(effect),
            validate_duration(duration),
        ]
        return self.send_request(Method.SET_HSV, params)

    def set_brightness(
        self,
        bright: int,
        effect: str = DEFAULT_EFFECT,
        duration: int = DEFAULT_DURATION_MS,
    ) -> Awaitable[Response]:
        """Set brightness percentage (1-100)."""
        params: list[ParamValue] = [validate_brightness(bright), validate_effect(effect), validate_duration(duration)]
        return self.send_request(Method.SET_BRIGHT, params)

    def set_color_temperature(
        self,
        ct: int,
        effect: str = DEFAULT_EFFECT,
        duration: int = DEFAULT_DURATION_MS,
    ) -> Awaitable[Response]:
        """Set white color temperature in Kelvin (1700-6500)."""
        params: list[ParamValue] = [validate_color_temperature(ct), validate_effect(effect), validate_duration(duration)]
        return self.send_request(Method.SET_CT_ABX, params)

    def set_name(self, name: str) -> Awaitable[Response]:
        """Store a name on the device."""
        return self.send_request(Method.SET_NAME, [validate_name(name)])

    def set_default(self) -> Awaitable[Response]:
        """Save the current state as the power-on default."""
        return self.send_request(Method.SET_DEFAULT, [])

    def toggle(self) -> Awaitable[Response]:
        """Flip the power state."""
        return self.send_request(Method.TOGGLE, [])

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def check_health(self, timeout: float | None = None) -> bool:
        """Probe liveness with a single-property query.

        Args:
            timeout: Probe timeout in seconds (defaults to health_check_timeout)

        Returns:
            True if the device answered without an error

        """
        probe_timeout = timeout if timeout is not None else self.config.timeouts.health_check_timeout
        try:
            response = await self.send_request(Method.GET_PROP, [Prop.POWER.value], timeout=probe_timeout)
        except YeelightError as e:
            self._healthy = False
            self._logger.warning(
                "Health check failed for %s: %s",
                self._descriptor.label,
                e,
                extra={"device_id": self.device_id, "error_type": type(e).__name__},
            )
            return False

        self._healthy = response.error is None
        return self._healthy


def _abandon(pending: PendingRequest) -> None:
    """Settle a request's future that nobody will await."""
    future = pending.future
    if not future.done():
        _ = future.cancel()
    elif not future.cancelled():
        # Mark an exception set by a concurrent teardown as retrieved
        _ = future.exception()
