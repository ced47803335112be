"""Inbound frame decoding.

A chunk from the channel may carry several delimited frames. Each frame is
either a single response object or a batch array of them, decoded here into
``Single`` or ``Batch`` before anything is dispatched.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .errors import MalformedFrameError
from .types import Response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Single:
    """One response object."""

    response: Response


@dataclass(frozen=True)
class Batch:
    """A JSON array of responses, in array order."""

    responses: list[Response] = field(default_factory=list)


Decoded = Single | Batch


BOM = "\ufeff"
UTF8_BOM = BOM.encode("utf-8")


def split_frames(chunk: bytes | str, delimiter: str = "\n") -> Iterator[bytes | str]:
    """Yield the non-blank frames in a chunk.

    Bytes are split before decoding so one bad frame cannot spoil the rest
    of the chunk; frames come back as bytes and are decoded one at a time.
    """
    if isinstance(chunk, bytes | bytearray):
        pieces: list[Any] = bytes(chunk).split(delimiter.encode("utf-8"))
        bom: Any = UTF8_BOM
    else:
        pieces = chunk.split(delimiter)
        bom = BOM

    for piece in pieces:
        # Input accepts CRLF and a leading BOM
        piece = piece.strip()
        if piece.startswith(bom):
            piece = piece[len(bom):]
        if piece:
            yield piece


def _to_response(value: object) -> Response | None:
    if not isinstance(value, dict):
        logger.debug(f"Skipping non-object response element: {value!r}")
        return None
    return Response.from_message(value)


def decode_frame(frame: bytes | str) -> Decoded:
    """Parse one frame.

    Raises:
        MalformedFrameError: If the frame is not UTF-8, not valid JSON, or
            nested too deeply to parse
    """
    try:
        text = frame.decode("utf-8") if isinstance(frame, bytes | bytearray) else frame
        value = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise MalformedFrameError(frame, e) from e

    if isinstance(value, list):
        responses = [r for r in (_to_response(v) for v in value) if r is not None]
        return Batch(responses)

    response = _to_response(value)
    if response is None:
        return Batch([])
    return Single(response)
