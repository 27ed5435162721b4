"""Asyncio TCP socket abstraction with deadlines and instrumentation."""

from __future__ import annotations

import asyncio
import time

from yeelight_lan.config import LoggingConfig
from yeelight_lan.logging_abstraction import get_logger


class TCPConnection:
    """Async TCP connection with timeouts and instrumentation.

    connect() and send() report failure by returning False and keeping the
    underlying exception in last_error; recv() returns None once the stream
    has ended or failed.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 5.0,
        io_timeout: float = 5.0,
        max_read_size: int = 1024,
        logging_config: LoggingConfig | None = None,
    ) -> None:
        """
        Initialize TCP connection parameters.

        Args:
            host: Target host
            port: Target port
            connect_timeout: Connection timeout in seconds
            io_timeout: Write (drain) timeout in seconds
            max_read_size: Maximum bytes to read in one operation
            logging_config: Logger settings
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.max_read_size = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.last_error: BaseException | None = None
        self._connected = False
        self._logger = get_logger(__name__, logging_config)

    async def connect(self) -> bool:
        """
        Establish TCP connection with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        start_time = time.perf_counter()
        self.last_error = None
        try:
            self._logger.debug(
                "Connecting to %s:%d (timeout: %.1fs)",
                self.host,
                self.port,
                self.connect_timeout,
                extra={"host": self.host, "port": self.port, "timeout": self.connect_timeout},
            )
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._connected = True
            self._logger.info(
                "Connected to %s:%d in %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
            )
        except TimeoutError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = e
            self._logger.error(
                "Connection to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": "timeout"},
            )
            return False
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = e
            self._logger.error(
                "Connection to %s:%d failed after %.1fms: %s",
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": str(e)},
            )
            return False
        else:
            return True

    async def send(self, data: bytes) -> bool:
        """
        Send data with timeout.

        Args:
            data: Bytes to send

        Returns:
            True if sent successfully, False otherwise
        """
        self.last_error = None
        if not self._connected or not self.writer:
            self.last_error = ConnectionResetError("not connected")
            self._logger.error(
                "Cannot send: not connected",
                extra={"host": self.host, "port": self.port},
            )
            return False

        start_time = time.perf_counter()
        try:
            self._logger.debug(
                "Sending %d bytes to %s:%d",
                len(data),
                self.host,
                self.port,
                extra={"bytes": len(data), "host": self.host, "port": self.port},
            )
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.io_timeout)
        except TimeoutError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = e
            self._logger.error(
                "Send to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": "timeout"},
            )
            return False
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = e
            self._logger.error(
                "Send to %s:%d failed after %.1fms: %s",
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": str(e)},
            )
            return False
        else:
            return True

    async def recv(self, max_bytes: int | None = None) -> bytes | None:
        """
        Receive the next chunk, waiting as long as it takes.

        Devices stay silent between replies, so reads carry no deadline.

        Args:
            max_bytes: Maximum bytes to read (default: self.max_read_size)

        Returns:
            Received bytes, or None on end-of-stream or error
        """
        if not self._connected or not self.reader:
            return None

        try:
            data = await self.reader.read(max_bytes or self.max_read_size)
        except OSError as e:
            self.last_error = e
            self._connected = False
            self._logger.error(
                "Receive from %s:%d failed: %s",
                self.host,
                self.port,
                e,
                extra={"host": self.host, "port": self.port, "error": str(e)},
            )
            return None

        if not data:
            self._connected = False
            self._logger.info(
                "Connection closed by %s:%d",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port},
            )
            return None
        self._logger.debug(
            "Received %d bytes from %s:%d",
            len(data),
            self.host,
            self.port,
            extra={"bytes": len(data), "host": self.host, "port": self.port},
        )
        return data

    async def close(self) -> None:
        """Close the connection."""
        writer = self.writer
        self._connected = False
        self.writer = None
        self.reader = None
        if writer is None:
            return
        self._logger.debug(
            "Closing connection to %s:%d",
            self.host,
            self.port,
            extra={"host": self.host, "port": self.port},
        )
        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, ConnectionError) as e:
            self._logger.warning(
                "Error closing connection: %s",
                e,
                extra={"host": self.host, "port": self.port, "error": str(e), "error_type": type(e).__name__},
            )

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        return self._connected

    @property
    def is_usable(self) -> bool:
        """True when the stream is connected and both directions are still open."""
        if not self._connected or self.writer is None or self.reader is None:
            return False
        return not self.writer.is_closing() and not self.reader.at_eof()

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._connected else "disconnected"
        return f"TCPConnection({self.host}:{self.port}, {status})"
