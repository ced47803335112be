"""Unit tests for inbound frame splitting and decoding."""

from __future__ import annotations

import pytest

from jsonrpc_client_stream.decoding import Batch, Single, decode_frame, split_frames
from jsonrpc_client_stream.errors import MalformedFrameError
from jsonrpc_client_stream.types import Response


class TestSplitFrames:
    """Tests for split_frames()."""

    def test_single_frame_without_delimiter(self) -> None:
        assert list(split_frames('{"id": 1}')) == ['{"id": 1}']

    def test_trailing_delimiter_yields_no_empty_frame(self) -> None:
        assert list(split_frames('{"id": 1}\n')) == ['{"id": 1}']

    def test_multiple_frames_per_chunk(self) -> None:
        chunk = '{"id": 1}\n{"id": 2}\n\n{"id": 3}\n'
        assert list(split_frames(chunk)) == ['{"id": 1}', '{"id": 2}', '{"id": 3}']

    def test_bytes_stay_bytes_until_decoded(self) -> None:
        assert list(split_frames('{"result": "héllo"}\n'.encode())) == ['{"result": "héllo"}'.encode()]

    def test_bytes_split_before_decoding(self) -> None:
        chunk = b'\xff\xfe garbage\n{"result": 1, "id": 1}\n'
        assert list(split_frames(chunk)) == [b"\xff\xfe garbage", b'{"result": 1, "id": 1}']

    def test_bytes_bom_is_stripped(self) -> None:
        assert list(split_frames(b'\xef\xbb\xbf{"id": 1}\r\n')) == [b'{"id": 1}']

    def test_crlf_and_bom_are_stripped(self) -> None:
        assert list(split_frames('\ufeff{"id": 1}\r\n')) == ['{"id": 1}']

    def test_custom_delimiter(self) -> None:
        assert list(split_frames('{"id": 1}\x00{"id": 2}', "\x00")) == ['{"id": 1}', '{"id": 2}']


class TestDecodeFrame:
    """Tests for decode_frame()."""

    def test_object_decodes_to_single(self) -> None:
        decoded = decode_frame('{"jsonrpc": "2.0", "result": 3, "id": 1}')
        assert decoded == Single(Response(id=1, result=3))

    def test_error_response(self) -> None:
        decoded = decode_frame(
            '{"jsonrpc": "2.0", "error": {"code": -32601, "message": "Method not found"}, "id": 1}'
        )
        assert isinstance(decoded, Single)
        assert decoded.response.error == {"code": -32601, "message": "Method not found"}
        assert decoded.response.result is None

    def test_array_decodes_to_batch_in_order(self) -> None:
        decoded = decode_frame('[{"result": 3, "id": 1}, {"result": "pong", "id": 2}]')
        assert decoded == Batch([Response(id=1, result=3), Response(id=2, result="pong")])

    def test_non_object_batch_elements_skipped(self) -> None:
        decoded = decode_frame('[1, {"result": 3, "id": 1}, "x"]')
        assert decoded == Batch([Response(id=1, result=3)])

    def test_scalar_decodes_to_empty_batch(self) -> None:
        assert decode_frame("42") == Batch([])

    def test_malformed_json_raises(self) -> None:
        frame = '{"jsonrpc": "2.0", "result": 3, "id": 1'
        with pytest.raises(MalformedFrameError) as exc_info:
            decode_frame(frame)
        assert exc_info.value.frame == frame
        assert isinstance(exc_info.value, ValueError)

    def test_utf8_bytes_decode(self) -> None:
        decoded = decode_frame('{"result": "héllo", "id": 1}'.encode())
        assert decoded == Single(Response(id=1, result="héllo"))

    def test_invalid_utf8_raises(self) -> None:
        frame = b'\xff\xfe{"result": 1, "id": 1}'
        with pytest.raises(MalformedFrameError) as exc_info:
            decode_frame(frame)
        assert exc_info.value.frame == frame
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_excessive_nesting_raises(self) -> None:
        with pytest.raises(MalformedFrameError) as exc_info:
            decode_frame("[" * 100000)
        assert isinstance(exc_info.value.cause, RecursionError)
