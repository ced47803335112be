"""Channel transports for the Correlator.

Binds a Correlator to a concrete duplex byte channel. The Correlator only
produces and consumes delimited text frames; transports own the connection:

- TcpClientTransport: asyncio TCP connection
- StdioClientTransport: subprocess stdin/stdout (newline-delimited JSON)
- LoopbackChannel: in-memory channel for tests, no I/O

Each connected transport runs a background reader that feeds every line it
reads into ``correlator.write`` and subscribes to the correlator's "data"
event to write outbound frames.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from .config import ClientTransportConfig, CorrelatorConfig
from .correlator import Correlator
from .errors import MalformedFrameError

logger = logging.getLogger(__name__)

ENCODING = "utf-8"

# Generous line limit; batch responses can be large
STREAM_LIMIT = 16 * 1024 * 1024


class TransportState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class BaseChannelTransport(ABC):
    """Base class for stream-backed channel transports.

    Provides:
    - State management
    - Background reader task feeding the correlator
    - Outbound frame writing
    """

    def __init__(
        self,
        config: ClientTransportConfig,
        correlator: Correlator | None = None,
    ):
        self.config = config
        self.correlator = correlator or Correlator(CorrelatorConfig.from_env())
        self._state = TransportState.DISCONNECTED
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._unsubscribe: Any = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if transport is connected."""
        return self._state == TransportState.CONNECTED

    async def connect(self) -> None:
        """Establish connection."""
        async with self._lock:
            if self._state == TransportState.CONNECTED:
                return

            self._state = TransportState.CONNECTING
            if self._unsubscribe:
                self._unsubscribe()
                self._unsubscribe = None

            try:
                self._reader, self._writer = await asyncio.wait_for(
                    self._do_connect(), timeout=self.config.connect_timeout
                )
                self._unsubscribe = self.correlator.on("data", self._send_frame)
                self._state = TransportState.CONNECTED

                # Start background reader
                self._reader_task = asyncio.create_task(self._read_loop())

                logger.info(f"{self.__class__.__name__} connected")
            except Exception as e:
                self._state = TransportState.DISCONNECTED
                raise ConnectionError(f"Failed to connect: {e}") from e

    async def disconnect(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self._state == TransportState.CLOSED:
                return
            # The reader may have ended on its own; its resources still need closing
            if self._state == TransportState.DISCONNECTED and self._reader_task is None:
                return

            self._state = TransportState.CLOSED

            if self._unsubscribe:
                self._unsubscribe()
                self._unsubscribe = None

            # Cancel reader task
            if self._reader_task:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
                self._reader_task = None

            if self._writer:
                self._writer.close()
                with contextlib.suppress(ConnectionError, OSError):
                    await self._writer.wait_closed()
                self._writer = None
            self._reader = None

            await self._do_disconnect()
            self._state = TransportState.DISCONNECTED
            logger.info(f"{self.__class__.__name__} disconnected")

    def _send_frame(self, frame: str) -> None:
        """Write an outbound frame produced by the correlator."""
        if not self._writer or self._writer.is_closing():
            logger.warning("Dropping outbound frame: transport not connected")
            return
        self._writer.write(frame.encode(ENCODING))

    async def drain(self) -> None:
        """Wait until buffered outbound frames are handed to the OS."""
        if self._writer:
            await self._writer.drain()

    async def _read_loop(self) -> None:
        """Background task reading frames into the correlator.

        A bad frame never ends the loop: oversized lines are discarded and
        reported as malformed. Only EOF or a read error does, which leaves
        the transport DISCONNECTED.
        """
        if not self._reader:
            return

        delimiter = self.correlator.delimiter.encode(ENCODING)
        try:
            while True:
                try:
                    chunk = await self._reader.readuntil(delimiter)
                except asyncio.IncompleteReadError as e:
                    # EOF; hand over whatever trailing data arrived
                    if e.partial:
                        self._feed(e.partial)
                    logger.info(f"{self.__class__.__name__} reached end of stream")
                    break
                except asyncio.LimitOverrunError as e:
                    # Drop the oversized part; the rest of the line arrives as its own frame
                    await self._reader.readexactly(e.consumed)
                    logger.warning(f"Discarded {e.consumed} bytes of an oversized frame")
                    self.correlator.emit_error(MalformedFrameError(b"", e))
                    continue
                self._feed(chunk)
        except asyncio.CancelledError:
            return
        except Exception as e:
            logger.error(f"Read loop error: {e}")

        if self._state == TransportState.CONNECTED:
            self._state = TransportState.DISCONNECTED

    def _feed(self, chunk: bytes) -> None:
        try:
            self.correlator.write(chunk)
        except Exception:
            logger.exception("Error processing inbound chunk")

    # Abstract methods for subclasses
    @abstractmethod
    async def _do_connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Implementation-specific connection logic."""
        ...

    async def _do_disconnect(self) -> None:
        """Implementation-specific disconnection logic."""

    async def __aenter__(self) -> BaseChannelTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()


class TcpClientTransport(BaseChannelTransport):
    """Transport over a TCP connection."""

    def __init__(
        self,
        config: ClientTransportConfig | None = None,
        correlator: Correlator | None = None,
    ):
        super().__init__(config or ClientTransportConfig(mode="tcp"), correlator)

    async def _do_connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Open the TCP connection."""
        reader, writer = await asyncio.open_connection(
            self.config.host, self.config.port, limit=STREAM_LIMIT
        )
        logger.info(f"Connected to {self.config.host}:{self.config.port}")
        return reader, writer


class StdioClientTransport(BaseChannelTransport):
    """Transport over subprocess stdin/stdout.

    Wire format:
    - Requests: JSON frame + newline to subprocess stdin
    - Responses: JSON frame + newline from subprocess stdout
    """

    def __init__(
        self,
        config: ClientTransportConfig | None = None,
        correlator: Correlator | None = None,
    ):
        super().__init__(config or ClientTransportConfig(mode="stdio"), correlator)
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None

    async def _do_connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Launch subprocess and establish communication."""
        cmd = self.config.command
        if not cmd:
            raise ValueError("No command configured for stdio transport")

        # Build environment
        env = None
        if self.config.env:
            env = {**os.environ, **self.config.env}

        self._process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.config.working_directory,
            env=env,
            limit=STREAM_LIMIT,
        )

        # Start stderr reader (for logging)
        self._stderr_task = asyncio.create_task(self._read_stderr())

        logger.info(f"Launched subprocess: {' '.join(cmd)} (pid={self._process.pid})")

        assert self._process.stdout is not None and self._process.stdin is not None
        return self._process.stdout, self._process.stdin

    async def _do_disconnect(self) -> None:
        """Terminate subprocess."""
        if self._stderr_task:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
            self._stderr_task = None

        if self._process:
            if self._process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    self._process.terminate()
                try:
                    await asyncio.wait_for(self._process.wait(), timeout=5.0)
                except TimeoutError:
                    self._process.kill()
                    await self._process.wait()
            logger.info(f"Subprocess terminated (pid={self._process.pid})")
            self._process = None

    async def _read_stderr(self) -> None:
        """Read and log stderr output."""
        if not self._process or not self._process.stderr:
            return

        try:
            while True:
                line = await self._process.stderr.readline()
                if not line:
                    break
                logger.debug(f"[server stderr] {line.decode(ENCODING).strip()}")
        except asyncio.CancelledError:
            pass


class LoopbackChannel:
    """In-memory duplex channel for testing.

    Records every outbound frame and lets tests push inbound chunks.
    No actual I/O - everything is in-memory.

    Usage:
        channel = LoopbackChannel()
        channel.correlator.emit("ping", callback)
        await channel.next_frame()          # '{"jsonrpc":"2.0","method":"ping","id":1}\\n'
        channel.push('{"jsonrpc":"2.0","result":"pong","id":1}')
    """

    def __init__(self, correlator: Correlator | None = None) -> None:
        self.correlator = correlator or Correlator()
        self._frames: asyncio.Queue[str] = asyncio.Queue()
        self._sent: list[str] = []
        self.acknowledged = 0
        self.correlator.on("data", self._record)

    @property
    def sent_frames(self) -> list[str]:
        """Get all frames written to the channel so far."""
        return self._sent.copy()

    def _record(self, frame: str) -> None:
        self._sent.append(frame)
        self._frames.put_nowait(frame)

    async def next_frame(self, timeout: float = 1.0) -> str:
        """Wait for the next outbound frame."""
        return await asyncio.wait_for(self._frames.get(), timeout=timeout)

    def push(self, chunk: bytes | str) -> None:
        """Deliver an inbound chunk to the correlator."""
        self.correlator.write(chunk, self._ack)

    def _ack(self) -> None:
        self.acknowledged += 1


# Factory functions


def create_tcp_transport(
    host: str = "127.0.0.1",
    port: int = 4000,
    correlator: Correlator | None = None,
) -> TcpClientTransport:
    """Create a TCP transport.

    Args:
        host: Server host
        port: Server port
        correlator: Correlator to bind (default: one configured from the environment)
    """
    config = ClientTransportConfig(mode="tcp", host=host, port=port)
    return TcpClientTransport(config, correlator)


def create_stdio_transport(
    command: list[str],
    working_directory: str | None = None,
    env: dict[str, str] | None = None,
    correlator: Correlator | None = None,
) -> StdioClientTransport:
    """Create a stdio transport for subprocess communication.

    Args:
        command: Server command line
        working_directory: CWD for subprocess
        env: Additional environment variables
        correlator: Correlator to bind (default: one configured from the environment)
    """
    config = ClientTransportConfig(
        mode="stdio",
        command=command,
        working_directory=working_directory,
        env=env,
    )
    return StdioClientTransport(config, correlator)


def create_transport(
    config: ClientTransportConfig,
    correlator: Correlator | None = None,
) -> BaseChannelTransport:
    """Create a transport for the configured mode."""
    if config.mode == "tcp":
        return TcpClientTransport(config, correlator)
    if config.mode == "stdio":
        return StdioClientTransport(config, correlator)
    raise ValueError(f"Unknown transport mode: {config.mode}")
