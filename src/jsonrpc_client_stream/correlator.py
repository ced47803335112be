"""JSON-RPC 2.0 client correlator.

Sits between application code and a duplex text channel:

- Outbound: ``emit`` builds a request or notification, tracks requests that
  carry a completion, and defers the write to the end of the current event
  loop iteration so calls issued together go out as one batch.
- Inbound: ``write`` takes a chunk from the channel, decodes each frame
  (single response or batch) and fires the matching completions.
- Timeouts: every tracked request gets a one-shot timer. Whichever of the
  timer and the real response comes first resolves the call; the other is
  a no-op.

Wire format (one frame per flush, terminated by the delimiter):
    → {"jsonrpc":"2.0","method":"add","params":[1,2],"id":1}
    → [{"jsonrpc":"2.0","method":"foo","id":2},{"jsonrpc":"2.0","method":"bar"}]
    ← {"jsonrpc":"2.0","result":3,"id":1}

One Correlator per channel: two instances writing to the same channel
would interleave their frames.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from .config import CorrelatorConfig
from .decoding import Batch, Single, decode_frame, split_frames
from .errors import JsonRpcProtocolError, MalformedFrameError, ResponseTimeoutError
from .messages import Call, Completion, IdGenerator, build, counter, encode
from .types import Params, Response

logger = logging.getLogger(__name__)

# Listener types
DataListener = Callable[[str], Any]
ErrorListener = Callable[[Exception], Any]

EVENTS = ("data", "error")


class Correlator:
    """Matches inbound responses to outbound calls by id.

    Usage:
        correlator = Correlator(timeout=5000)
        correlator.on("data", lambda frame: writer.write(frame.encode()))

        correlator.emit("add", [1, 2], lambda err, result: print(err, result))
        result = await correlator.call("ping")

        # For every chunk read from the channel:
        correlator.write(chunk)
    """

    def __init__(
        self,
        config: CorrelatorConfig | None = None,
        *,
        next_id: IdGenerator | None = None,
        timeout: float | None = None,
        delimiter: str | None = None,
    ) -> None:
        """Initialize the correlator.

        Args:
            config: Base configuration (default: CorrelatorConfig())
            next_id: Id generator, overrides config
            timeout: Milliseconds before an unanswered call fails, overrides config
            delimiter: Frame delimiter, overrides config
        """
        self.config = config or CorrelatorConfig()
        self._next_id = next_id or self.config.next_id or counter()
        self._timeout = timeout if timeout is not None else self.config.timeout
        if self._timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self._timeout}")
        self._delimiter = delimiter or self.config.delimiter

        self._pending: dict[Any, Completion] = {}
        self._timers: dict[Any, asyncio.TimerHandle] = {}
        self._outgoing: list[dict[str, Any]] = []
        self._flush_scheduled = False
        self._listeners: dict[str, list[Callable[[Any], Any]]] = {name: [] for name in EVENTS}

    @property
    def timeout(self) -> float:
        """Response timeout in milliseconds."""
        return self._timeout

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @property
    def pending_count(self) -> int:
        """Number of calls still awaiting a response."""
        return len(self._pending)

    def is_pending(self, request_id: Any) -> bool:
        return request_id in self._pending

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event: str, listener: Callable[[Any], Any]) -> Callable[[], None]:
        """Register a listener for "data" (outbound frames) or "error".

        Returns:
            Unsubscribe function
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def emit_error(self, error: Exception) -> None:
        """Report a channel-level error to "error" listeners."""
        self._emit_event("error", error)

    def _emit_event(self, event: str, payload: Any) -> None:
        listeners = list(self._listeners[event])
        if not listeners and event == "error":
            logger.error(f"Unhandled correlator error: {payload}")
            return

        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Error in {event} listener")

    # =========================================================================
    # Outbound
    # =========================================================================

    def emit(
        self,
        method: str,
        params: Params | Completion | None = None,
        completion: Completion | None = None,
    ) -> Any | None:
        """Queue a request (with completion) or notification (without).

        The write happens when the current event loop iteration yields;
        everything emitted before then is sent as one batch.

        Returns:
            The request id, or None for a notification
        """
        loop = asyncio.get_running_loop()
        unit = build(method, params, completion, next_id=self._next_id)

        request_id = None
        if isinstance(unit, Call):
            request_id = unit.id
            if request_id in self._pending:
                logger.warning(
                    f"Request id {request_id!r} reused while still pending; "
                    "the earlier call will never complete"
                )
            self._pending[request_id] = unit.completion
            self._arm(loop, request_id, unit.request.to_wire())
            self._outgoing.append(unit.request.to_wire())
        else:
            self._outgoing.append(unit.to_wire())

        if not self._flush_scheduled:
            self._flush_scheduled = True
            loop.call_soon(self.flush)

        return request_id

    def notify(self, method: str, params: Params | None = None) -> None:
        """Send a fire-and-forget notification."""
        self.emit(method, params)

    def call(self, method: str, params: Params | None = None) -> asyncio.Future[Any]:
        """Send a request and return a future for its result.

        The future raises JsonRpcProtocolError for a remote error and
        ResponseTimeoutError if no response arrives in time.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def complete(error: Any, result: Any) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(JsonRpcProtocolError.from_error(error))
            else:
                future.set_result(result)

        self.emit(method, params, complete)
        return future

    def flush(self) -> None:
        """Write everything queued so far as a single frame."""
        self._flush_scheduled = False
        if not self._outgoing:
            return

        # Swap before encoding so re-entrant emits start a fresh batch
        units, self._outgoing = self._outgoing, []
        frame = encode(units, self._delimiter)
        logger.debug(f"Flushing {len(units)} message(s)")
        self._emit_event("data", frame)

    # =========================================================================
    # Timeouts
    # =========================================================================

    def _arm(
        self,
        loop: asyncio.AbstractEventLoop,
        request_id: Any,
        request: dict[str, Any],
    ) -> None:
        self._disarm(request_id)
        self._timers[request_id] = loop.call_later(
            self._timeout / 1000, self._expire, request_id, request
        )

    def _disarm(self, request_id: Any) -> None:
        timer = self._timers.pop(request_id, None)
        if timer is not None:
            timer.cancel()

    def _expire(self, request_id: Any, request: dict[str, Any]) -> None:
        self._timers.pop(request_id, None)
        if request_id not in self._pending:
            return

        logger.warning(f"Request {request_id} ({request.get('method')}) timed out")
        self._dispatch(Response(id=request_id, error=ResponseTimeoutError(request)))

    # =========================================================================
    # Inbound
    # =========================================================================

    def write(self, chunk: bytes | str, callback: Callable[[], Any] | None = None) -> None:
        """Consume one chunk from the channel.

        Malformed frames are reported through "error" listeners and skipped;
        the remaining frames in the chunk are still processed. ``callback``
        acknowledges the chunk and always runs.
        """
        try:
            for frame in split_frames(chunk, self._delimiter):
                try:
                    decoded = decode_frame(frame)
                except MalformedFrameError as e:
                    self.emit_error(e)
                    continue

                match decoded:
                    case Batch(responses=responses):
                        for response in responses:
                            self._dispatch(response)
                    case Single(response=response):
                        self._dispatch(response)
        finally:
            if callback is not None:
                callback()

    def _dispatch(self, response: Response) -> None:
        try:
            completion = self._pending.pop(response.id, None)
        except TypeError:
            # Unhashable id cannot match any pending call
            completion = None

        if completion is None:
            logger.debug(f"Dropping response for unknown request: {response.id!r}")
            return

        self._disarm(response.id)

        try:
            completion(response.error, response.result)
        except Exception:
            logger.exception(f"Error in completion for request {response.id!r}")
