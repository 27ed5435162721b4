"""TCP stream line framing with buffer overflow protection.

This module provides LineFramer for extracting complete newline-terminated
lines from a TCP byte stream, handling partial lines and multi-line reads.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LineFramer:
    r"""Extract complete lines from a TCP byte stream.

    TCP reads may return a partial line, several lines, or exact boundaries.
    LineFramer buffers incoming bytes and yields every complete line, trimmed,
    with empty lines discarded. Both CRLF and bare LF terminate a line.

    Security: if the unterminated tail grows past MAX_LINE_SIZE the buffer is
    discarded, so a peer that never sends a newline cannot exhaust memory.

    Example:
        framer = LineFramer()
        assert framer.feed(b'{"id":1,"res') == []
        assert framer.feed(b'ult":["ok"]}\r\n{"id":2') == ['{"id":1,"result":["ok"]}']

    """

    MAX_LINE_SIZE: int = 16384

    def __init__(self) -> None:
        """Initialize line framer with empty buffer."""
        self.buffer: bytearray = bytearray()

    def feed(self, data: bytes) -> list[str]:
        """Add data to buffer and return list of complete, non-empty lines.

        Args:
            data: Incoming bytes from TCP read

        Returns:
            Decoded, stripped lines (may be empty if no complete line arrived)

        """
        self.buffer.extend(data)
        lines: list[str] = []

        while True:
            newline_at = self.buffer.find(b"\n")
            if newline_at < 0:
                break
            raw_line = bytes(self.buffer[:newline_at])
            del self.buffer[: newline_at + 1]
            line = raw_line.decode("utf-8", errors="replace").strip()
            if line:
                lines.append(line)

        if len(self.buffer) > self.MAX_LINE_SIZE:
            logger.warning(
                "Discarding %d buffered bytes without line terminator (max %d)",
                len(self.buffer),
                self.MAX_LINE_SIZE,
                extra={"buffer_size": len(self.buffer)},
            )
            self.buffer = bytearray()

        return lines

    def reset(self) -> None:
        """Drop any partially received line (used when the stream is replaced)."""
        self.buffer = bytearray()

    @property
    def pending_bytes(self) -> int:
        """Number of buffered bytes still waiting for a terminator."""
        return len(self.buffer)
