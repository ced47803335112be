"""Unit tests for outbound message construction and encoding."""

from __future__ import annotations

import json

import pytest

from jsonrpc_client_stream.messages import (
    Call,
    build,
    counter,
    create_notification,
    create_request,
    encode,
)
from jsonrpc_client_stream.types import JsonRpcNotification

# =============================================================================
# Id generation
# =============================================================================


class TestCounter:
    """Tests for the default id generator."""

    def test_starts_at_one(self) -> None:
        next_id = counter()
        assert next_id() == 1
        assert next_id() == 2
        assert next_id() == 3

    def test_generators_are_independent(self) -> None:
        """Each generator owns its own sequence."""
        a = counter()
        b = counter()
        a()
        a()
        assert b() == 1
        assert a() == 3


# =============================================================================
# build()
# =============================================================================


class TestBuild:
    """Tests for build() - request vs notification."""

    def test_without_completion_builds_notification(self) -> None:
        unit = build("update", [1, 2, 3], next_id=counter())
        assert isinstance(unit, JsonRpcNotification)
        assert unit.to_wire() == {"jsonrpc": "2.0", "method": "update", "params": [1, 2, 3]}

    def test_notification_has_no_id_field(self) -> None:
        unit = build("foobar", next_id=counter())
        assert "id" not in unit.to_wire()

    def test_with_completion_builds_call(self) -> None:
        def completion(err, result):
            pass

        unit = build("add", [1, 2], completion, next_id=counter())
        assert isinstance(unit, Call)
        assert unit.id == 1
        assert unit.method == "add"
        assert unit.completion is completion
        assert unit.request.to_wire() == {
            "jsonrpc": "2.0",
            "method": "add",
            "params": [1, 2],
            "id": 1,
        }

    def test_callable_params_is_completion(self) -> None:
        """build("ping", cb) sends no params and tracks cb."""

        def completion(err, result):
            pass

        unit = build("ping", completion, next_id=counter())
        assert isinstance(unit, Call)
        assert unit.completion is completion
        assert unit.request.to_wire() == {"jsonrpc": "2.0", "method": "ping", "id": 1}

    def test_uses_injected_generator(self) -> None:
        unit = build("foobar", lambda e, r: None, next_id=lambda: 100)
        assert unit.id == 100

    def test_keyed_params(self) -> None:
        unit = build("greet", {"name": "ada"}, next_id=counter())
        assert unit.to_wire()["params"] == {"name": "ada"}

    def test_notification_does_not_consume_id(self) -> None:
        next_id = counter()
        build("log", ["x"], next_id=next_id)
        call = build("ping", lambda e, r: None, next_id=next_id)
        assert call.id == 1


# =============================================================================
# Helpers
# =============================================================================


class TestCreateHelpers:
    def test_create_request_omits_absent_params(self) -> None:
        assert create_request("ping", id=7).to_wire() == {"jsonrpc": "2.0", "method": "ping", "id": 7}

    def test_create_notification(self) -> None:
        assert create_notification("log", {"level": 1}).to_wire() == {
            "jsonrpc": "2.0",
            "method": "log",
            "params": {"level": 1},
        }


# =============================================================================
# encode()
# =============================================================================


class TestEncode:
    def test_single_unit_is_bare_object(self) -> None:
        frame = encode([{"jsonrpc": "2.0", "method": "foo", "id": 1}])
        assert frame.endswith("\n")
        assert json.loads(frame) == {"jsonrpc": "2.0", "method": "foo", "id": 1}

    def test_multiple_units_are_batch_array(self) -> None:
        units = [
            {"jsonrpc": "2.0", "method": "foo", "id": 1},
            {"jsonrpc": "2.0", "method": "bar"},
        ]
        frame = encode(units)
        assert json.loads(frame) == units

    def test_single_trailing_delimiter(self) -> None:
        frame = encode([{"jsonrpc": "2.0", "method": "foo"}], delimiter="\r\n")
        assert frame.endswith("\r\n")
        assert frame.count("\n") == 1

    def test_empty_queue_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode([])
