"""Outbound message construction and encoding.

Builds requests and notifications from ``emit``-style arguments and turns
a tick's worth of queued messages into one wire frame.
"""

from __future__ import annotations

import itertools
import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .types import JsonRpcNotification, JsonRpcRequest, Params

# (error, result) -> None
Completion = Callable[[Any, Any], Any]
IdGenerator = Callable[[], Any]


@dataclass
class Call:
    """An outbound request awaiting exactly one correlated response."""

    request: JsonRpcRequest
    completion: Completion

    @property
    def id(self) -> Any:
        return self.request.id

    @property
    def method(self) -> str:
        return self.request.method


def counter(start: int = 1) -> IdGenerator:
    """Return a fresh monotonically increasing integer id generator."""
    return itertools.count(start).__next__


def create_request(method: str, params: Params | None = None, id: Any = None) -> JsonRpcRequest:
    """Create a JSON-RPC 2.0 request message."""
    return JsonRpcRequest(method=method, params=params, id=id)


def create_notification(method: str, params: Params | None = None) -> JsonRpcNotification:
    """Create a JSON-RPC 2.0 notification."""
    return JsonRpcNotification(method=method, params=params)


def build(
    method: str,
    params: Params | Completion | None = None,
    completion: Completion | None = None,
    *,
    next_id: IdGenerator,
) -> Call | JsonRpcNotification:
    """Build a Call when a completion is given, otherwise a notification.

    A callable in the ``params`` slot is taken as the completion, so
    ``build("ping", cb)`` sends no params.
    """
    if callable(params):
        completion = params
        params = None

    if completion is not None:
        return Call(request=create_request(method, params, id=next_id()), completion=completion)

    return create_notification(method, params)


def encode(units: Sequence[dict[str, Any]], delimiter: str = "\n") -> str:
    """Serialize queued wire messages into one delimited frame.

    A single message is sent as a bare object, two or more as a batch array.
    """
    if not units:
        raise ValueError("Nothing to encode")

    payload: Any = units[0] if len(units) == 1 else list(units)
    return json.dumps(payload, separators=(",", ":")) + delimiter
