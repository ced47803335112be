"""JSON-RPC 2.0 type definitions.

Outbound messages are pydantic models that serialize to the exact wire
shape (absent fields are omitted, never sent as null). Inbound responses
are kept loose: only ``id``, ``result`` and ``error`` are read, anything
else is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

# Params are an ordered sequence or a keyed mapping, opaque to this package
Params = list[Any] | dict[str, Any]

# =============================================================================
# JSON-RPC 2.0 Base Types
# =============================================================================


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Params | None = None
    id: Any

    def to_wire(self) -> dict[str, Any]:
        """Wire representation, omitting params when absent."""
        msg: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            msg["params"] = self.params
        msg["id"] = self.id
        return msg


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Params | None = None

    def to_wire(self) -> dict[str, Any]:
        """Wire representation, omitting params when absent."""
        msg: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            msg["params"] = self.params
        return msg


# Standard JSON-RPC error codes
class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Synthesized locally when no response arrives in time
    RESPONSE_TIMEOUT = -3199


# =============================================================================
# Inbound
# =============================================================================


@dataclass(frozen=True)
class Response:
    """A decoded inbound response.

    ``result`` and ``error`` should be mutually exclusive; when both are
    present the error wins at dispatch time.
    """

    id: Any
    result: Any = None
    error: Any = None

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> Response:
        return cls(
            id=message.get("id"),
            result=message.get("result"),
            error=message.get("error"),
        )
