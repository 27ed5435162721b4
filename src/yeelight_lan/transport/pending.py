"""In-flight request tracking for one device connection.

The table is only touched from event-loop code and never awaits between a
lookup and the matching mutation, so inserts from the send path and
removals from the read loop cannot interleave.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from yeelight_lan.const import MAX_PENDING_REQUESTS, MAX_REQUEST_ID
from yeelight_lan.protocol.messages import Request, Response


@dataclass
class PendingRequest:
    """Request awaiting its reply.

    Attributes:
        request_id: Wire id, unique among this connection's outstanding requests
        request: Originating request payload
        future: Single-use completion handle, resolved with the Response
        sent_at: Registration time (time.monotonic()) for latency metrics

    """

    request_id: int
    request: Request
    future: asyncio.Future[Response]
    sent_at: float = field(default_factory=time.monotonic)


class PendingRequestTable:
    """Maps request id to PendingRequest with a ceiling on outstanding entries.

    Ids come from a counter in [1, max_request_id) that wraps around and
    skips ids still in use.
    """

    def __init__(
        self,
        limit: int = MAX_PENDING_REQUESTS,
        max_request_id: int = MAX_REQUEST_ID,
    ) -> None:
        if limit >= max_request_id:
            error_msg = f"limit ({limit}) must be smaller than the id space ({max_request_id})"
            raise ValueError(error_msg)
        self.limit: int = limit
        self.max_request_id: int = max_request_id
        self._entries: dict[int, PendingRequest] = {}
        self._next_id: int = 1

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._entries

    @property
    def is_full(self) -> bool:
        """True once the ceiling of outstanding requests is reached."""
        return len(self._entries) >= self.limit

    def _allocate_id(self) -> int:
        while True:
            candidate = self._next_id
            self._next_id += 1
            if self._next_id >= self.max_request_id:
                self._next_id = 1
            if candidate not in self._entries:
                return candidate

    def register(self, request: Request) -> PendingRequest:
        """Assign an id to the request and track it.

        Callers must check is_full first; register does not enforce the ceiling
        so the caller can raise an error that names the device.
        """
        request_id = self._allocate_id()
        request.id = request_id
        loop = asyncio.get_running_loop()
        pending = PendingRequest(request_id=request_id, request=request, future=loop.create_future())
        self._entries[request_id] = pending
        return pending

    def resolve(self, response: Response) -> PendingRequest | None:
        """Complete and remove the entry matching response.id.

        Returns:
            The resolved entry, or None if nothing is waiting on that id

        """
        if response.id is None:
            return None
        pending = self._entries.pop(response.id, None)
        if pending is None:
            return None
        if not pending.future.done():
            pending.future.set_result(response)
        return pending

    def discard(self, request_id: int) -> PendingRequest | None:
        """Remove an entry without completing it (timeout, write failure)."""
        return self._entries.pop(request_id, None)

    def fail_all(self, error_factory: Callable[[int], BaseException]) -> int:
        """Fail and remove every outstanding entry.

        Args:
            error_factory: Builds the exception for a given request id

        Returns:
            Number of entries failed

        """
        entries = list(self._entries.values())
        self._entries.clear()
        for pending in entries:
            if not pending.future.done():
                pending.future.set_exception(error_factory(pending.request_id))
        return len(entries)
