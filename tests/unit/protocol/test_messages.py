"""Unit tests for command message encoding and response decoding."""

from __future__ import annotations

import json

import pytest

from tests.helpers.expectations import expect_exception
from yeelight_lan.exceptions import ProtocolError
from yeelight_lan.protocol.messages import Method, PowerMode, Request, decode_response


class TestRequest:
    """Tests for Request encoding."""

    def test_encode_is_compact_crlf_line(self) -> None:
        """Requests encode as one compact JSON object plus CRLF."""
        request = Request(method=Method.SET_RGB, params=[255, "smooth", 500], id=7)

        assert request.encode() == b'{"id":7,"method":"set_rgb","params":[255,"smooth",500]}\r\n'

    def test_to_dict_key_order(self) -> None:
        """Wire objects list id, method, params in that order."""
        request = Request(method="toggle")

        assert list(request.to_dict()) == ["id", "method", "params"]
        assert request.to_dict()["params"] == []

    def test_method_values(self) -> None:
        """Method names match the device protocol."""
        assert Method.SET_BRIGHT == "set_bright"
        assert Method.GET_PROP == "get_prop"
        assert int(PowerMode.NIGHT) == 5


class TestDecodeResponse:
    """Tests for decode_response."""

    def test_result_reply(self) -> None:
        """Replies carry id and result list."""
        response = decode_response('{"id":1,"result":["ok"]}')

        assert response.id == 1
        assert response.result == ["ok"]
        assert response.error is None
        assert response.ok is True

    def test_error_reply(self) -> None:
        """Device errors are kept as a mapping."""
        response = decode_response('{"id":2,"error":{"code":-1,"message":"unsupported method"}}')

        assert response.ok is False
        assert response.error == {"code": -1, "message": "unsupported method"}

    def test_notification_has_no_id(self) -> None:
        """Property notifications decode with id None."""
        response = decode_response('{"method":"props","params":{"power":"on","bright":"10"}}')

        assert response.id is None
        assert response.method == "props"
        assert response.params == {"power": "on", "bright": "10"}

    @pytest.mark.parametrize("raw_id", ['"5"', "true", "1.5", "null"])
    def test_non_integer_ids_are_ignored(self, raw_id: str) -> None:
        """Only integer ids can match a request."""
        assert decode_response(f'{{"id":{raw_id},"result":["ok"]}}').id is None

    def test_zero_id_is_treated_as_missing(self) -> None:
        """Id 0 is never allocated, so it cannot match a request."""
        assert decode_response('{"id":0,"result":["ok"]}').id is None

    def test_raw_payload_kept(self) -> None:
        """The decoded object is kept for diagnostics."""
        line = '{"id":3,"result":["ok"],"extra":true}'

        assert decode_response(line).raw == json.loads(line)

    def test_invalid_json(self) -> None:
        """Undecodable lines raise ProtocolError with a bounded preview."""
        line = "x" * 200

        error = expect_exception(decode_response, ProtocolError, line)

        assert error.reason == "invalid_json"
        assert error.line_preview == "x" * 64

    def test_non_object_json(self) -> None:
        """JSON values other than objects are protocol errors."""
        error = expect_exception(decode_response, ProtocolError, "[1, 2, 3]")

        assert error.reason == "not_an_object"
