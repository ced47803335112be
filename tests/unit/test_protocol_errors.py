"""Unit tests for the exception hierarchy."""

from jsonrpc_client_stream.errors import (
    JsonRpcProtocolError,
    MalformedFrameError,
    ResponseTimeoutError,
)
from jsonrpc_client_stream.types import JsonRpcErrorCode


class TestJsonRpcProtocolError:
    def test_from_error_dict(self):
        error = JsonRpcProtocolError.from_error(
            {"code": -32602, "message": "Invalid params", "data": {"field": "x"}}
        )
        assert error.code == -32602
        assert error.message == "Invalid params"
        assert error.data == {"field": "x"}
        assert str(error) == "Invalid params"

    def test_from_error_missing_fields(self):
        error = JsonRpcProtocolError.from_error({})
        assert error.code == JsonRpcErrorCode.INTERNAL_ERROR
        assert error.message == "Unknown error"

    def test_from_error_non_dict(self):
        error = JsonRpcProtocolError.from_error("oops")
        assert error.message == "oops"

    def test_from_error_passes_exceptions_through(self):
        original = ResponseTimeoutError({"id": 1})
        assert JsonRpcProtocolError.from_error(original) is original


class TestResponseTimeoutError:
    def test_distinguishable_from_remote_errors(self):
        error = ResponseTimeoutError({"jsonrpc": "2.0", "method": "add", "id": 1})
        assert isinstance(error, JsonRpcProtocolError)
        assert isinstance(error, TimeoutError)
        assert error.code == JsonRpcErrorCode.RESPONSE_TIMEOUT
        assert error.data["method"] == "add"


class TestMalformedFrameError:
    def test_keeps_frame_and_cause(self):
        cause = ValueError("bad")
        error = MalformedFrameError("{", cause)
        assert error.frame == "{"
        assert error.cause is cause
        assert "Malformed frame" in str(error)
