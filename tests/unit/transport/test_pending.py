"""Unit tests for PendingRequestTable."""

from __future__ import annotations

import asyncio

import pytest

from tests.helpers.expectations import expect_exception
from yeelight_lan.exceptions import ConnectionClosedError
from yeelight_lan.protocol.messages import Request, Response
from yeelight_lan.transport.pending import PendingRequestTable


def make_request() -> Request:
    return Request(method="toggle")


class TestRegistration:
    """Tests for id allocation and registration."""

    @pytest.mark.asyncio
    async def test_register_assigns_sequential_ids(self) -> None:
        """Ids start at 1 and are written onto the request."""
        table = PendingRequestTable()

        first = table.register(make_request())
        second = table.register(make_request())

        assert (first.request_id, second.request_id) == (1, 2)
        assert first.request.id == 1
        assert len(table) == 2
        assert 1 in table
        assert not first.future.done()

    @pytest.mark.asyncio
    async def test_ids_wrap_and_skip_in_use(self) -> None:
        """The counter wraps below max_request_id and skips ids still outstanding."""
        table = PendingRequestTable(limit=3, max_request_id=4)

        ids = [table.register(make_request()).request_id for _ in range(3)]
        assert ids == [1, 2, 3]

        _ = table.discard(2)
        assert table.register(make_request()).request_id == 2

    @pytest.mark.asyncio
    async def test_is_full(self) -> None:
        """is_full reports the ceiling."""
        table = PendingRequestTable(limit=2)
        _ = table.register(make_request())
        assert table.is_full is False

        _ = table.register(make_request())

        assert table.is_full is True

    def test_limit_must_fit_id_space(self) -> None:
        """A limit at or above the id space is rejected."""
        _ = expect_exception(PendingRequestTable, ValueError, limit=10, max_request_id=10)


class TestCompletion:
    """Tests for resolve, discard and fail_all."""

    @pytest.mark.asyncio
    async def test_resolve_completes_and_removes(self) -> None:
        """A matching response completes the future exactly once."""
        table = PendingRequestTable()
        pending = table.register(make_request())
        response = Response(id=pending.request_id, result=["ok"])

        assert table.resolve(response) is pending
        assert await pending.future == response
        assert len(table) == 0
        assert table.resolve(response) is None

    @pytest.mark.asyncio
    async def test_resolve_unknown_or_missing_id(self) -> None:
        """Responses without a matching entry are ignored."""
        table = PendingRequestTable()
        _ = table.register(make_request())

        assert table.resolve(Response(id=42, result=["ok"])) is None
        assert table.resolve(Response(id=None, method="props")) is None
        assert len(table) == 1

    @pytest.mark.asyncio
    async def test_resolve_after_cancel(self) -> None:
        """An entry whose future was cancelled is removed without error."""
        table = PendingRequestTable()
        pending = table.register(make_request())
        _ = pending.future.cancel()

        assert table.resolve(Response(id=pending.request_id, result=["ok"])) is pending
        assert len(table) == 0

    @pytest.mark.asyncio
    async def test_fail_all(self) -> None:
        """Every outstanding future fails with the built error."""
        table = PendingRequestTable()
        entries = [table.register(make_request()) for _ in range(3)]

        failed = table.fail_all(lambda request_id: ConnectionClosedError("lamp", request_id))

        assert failed == 3
        assert len(table) == 0
        for pending in entries:
            error = pending.future.exception()
            assert isinstance(error, ConnectionClosedError)
            assert error.request_id == pending.request_id

    @pytest.mark.asyncio
    async def test_discard(self) -> None:
        """discard removes without completing."""
        table = PendingRequestTable()
        pending = table.register(make_request())

        assert table.discard(pending.request_id) is pending
        assert table.discard(pending.request_id) is None
        assert not pending.future.done()
        _ = pending.future.cancel()
        await asyncio.sleep(0)
