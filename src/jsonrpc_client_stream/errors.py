"""Exceptions raised or delivered by the JSON-RPC client stream."""

from __future__ import annotations

from typing import Any

from .types import JsonRpcErrorCode


class JsonRpcProtocolError(Exception):
    """Exception for JSON-RPC protocol errors."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_error(cls, error: Any) -> JsonRpcProtocolError:
        """Build from a remote error object as received on the wire."""
        if isinstance(error, JsonRpcProtocolError):
            return error
        if not isinstance(error, dict):
            return cls(JsonRpcErrorCode.INTERNAL_ERROR, str(error))
        return cls(
            code=error.get("code", JsonRpcErrorCode.INTERNAL_ERROR),
            message=error.get("message", "Unknown error"),
            data=error.get("data"),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={self.message!r})"


class ResponseTimeoutError(JsonRpcProtocolError, TimeoutError):
    """No response arrived for a request within the configured window.

    ``data`` carries the wire form of the request that timed out.
    """

    def __init__(self, request: dict[str, Any] | None = None) -> None:
        super().__init__(
            code=JsonRpcErrorCode.RESPONSE_TIMEOUT,
            message="Response timeout",
            data=request,
        )


class MalformedFrameError(ValueError):
    """An inbound frame could not be decoded as UTF-8 JSON.

    ``frame`` is the offending frame as received (bytes or text).
    """

    def __init__(self, frame: bytes | str, cause: Exception) -> None:
        super().__init__(f"Malformed frame: {cause}")
        self.frame = frame
        self.cause = cause
