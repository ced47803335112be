"""JSON-RPC 2.0 client stream.

Turns a duplex text channel into a request/notification emitter with
response correlation, timeouts and same-tick batching.

    correlator = Correlator(timeout=5000)
    correlator.on("data", channel_write)
    correlator.emit("add", [1, 2], lambda err, result: ...)
    correlator.write(chunk_from_channel)
"""

from .config import ClientTransportConfig, CorrelatorConfig
from .correlator import Correlator
from .decoding import Batch, Single, decode_frame, split_frames
from .errors import JsonRpcProtocolError, MalformedFrameError, ResponseTimeoutError
from .messages import Call, build, counter, create_notification, create_request, encode
from .transport import (
    BaseChannelTransport,
    LoopbackChannel,
    StdioClientTransport,
    TcpClientTransport,
    TransportState,
    create_stdio_transport,
    create_tcp_transport,
    create_transport,
)
from .types import JsonRpcErrorCode, JsonRpcNotification, JsonRpcRequest, Response

__all__ = [
    # Core
    "Correlator",
    "CorrelatorConfig",
    # Messages
    "Call",
    "build",
    "counter",
    "create_request",
    "create_notification",
    "encode",
    # Decoding
    "Single",
    "Batch",
    "decode_frame",
    "split_frames",
    # Errors
    "JsonRpcProtocolError",
    "ResponseTimeoutError",
    "MalformedFrameError",
    # Transports
    "BaseChannelTransport",
    "ClientTransportConfig",
    "TcpClientTransport",
    "StdioClientTransport",
    "LoopbackChannel",
    "TransportState",
    "create_tcp_transport",
    "create_stdio_transport",
    "create_transport",
    # Types
    "JsonRpcRequest",
    "JsonRpcNotification",
    "JsonRpcErrorCode",
    "Response",
]
