"""
Wire protocol.

Input: one JSON object per line, discriminated by "type":

    {"type": "render", "identifier": "1", "equation": "x^2", "cellWidth": 8,
     "cellHeight": 16, "width": 1, "height": 1, "flags": 0, "color": "#ffffff"}
    {"type": "scale-dynamic", "scale": 2}
    {"type": "scale-internal", "scale": 1.5}

Output: one colon-delimited frame per finished render request:

    <identifier>:image:<width>:<height>:<payloadLength>:<payload>
    <identifier>:error:0:0:<messageLength>:<message>

Frames have no terminator; the length field delimits the payload.
"""

import json
import math
import sys
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO, Union

from mdmath.contexts.rendering.exceptions import EmptyEquationError, InvalidRequestError
from mdmath.contexts.rendering.models import RenderRequest
from mdmath.contexts.serving.logger import _log_warning

REQUEST_RENDER = "render"
REQUEST_SCALE_DYNAMIC = "scale-dynamic"
REQUEST_SCALE_INTERNAL = "scale-internal"


def decode_line(line: str) -> Optional[dict]:
    """
    Decode one input line.

    Returns:
        The request object, or None for blank or undecodable lines
    """
    line = line.strip()
    if not line:
        return None
    try:
        message = json.loads(line)
    except json.JSONDecodeError as e:
        _log_warning(f"Skipping undecodable input line ({e.msg}): {line[:80]!r}")
        return None
    if not isinstance(message, dict):
        _log_warning(f"Skipping non-object input line: {line[:80]!r}")
        return None
    return message


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _positive_number(message: Mapping, field: str) -> Union[int, float]:
    value = message.get(field)
    if not _is_number(value) or value <= 0:
        raise InvalidRequestError(f"Invalid {field}: {value!r}")
    return value


def _positive_int(message: Mapping, field: str) -> int:
    value = _positive_number(message, field)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidRequestError(f"Invalid {field}: {value!r}")
        value = int(value)
    return value


def request_identifier(message: Mapping) -> Optional[str]:
    """Identifier of a request as echoed in frames, or None when absent."""
    identifier = message.get("identifier")
    if identifier is None or isinstance(identifier, (dict, list)):
        return None
    return str(identifier)


def parse_render_request(message: Mapping) -> RenderRequest:
    """
    Build a RenderRequest from a decoded render message.

    A missing or null equation is treated as empty. A blank equation is
    rejected before any other field is looked at.

    Raises:
        EmptyEquationError: If the equation is blank
        InvalidRequestError: If a field is missing or has the wrong type
    """
    identifier = request_identifier(message)
    if identifier is None:
        raise InvalidRequestError("Missing identifier")

    equation = message.get("equation")
    if equation is None:
        equation = ""
    if not isinstance(equation, str):
        raise InvalidRequestError(f"Invalid equation: {equation!r}")
    if not equation.strip():
        raise EmptyEquationError()

    flags = message.get("flags", 0)
    if not isinstance(flags, int) or isinstance(flags, bool) or flags < 0:
        raise InvalidRequestError(f"Invalid flags: {flags!r}")

    color = message.get("color")
    if not isinstance(color, str) or not color:
        raise InvalidRequestError(f"Invalid color: {color!r}")

    return RenderRequest(
        identifier=identifier,
        equation=equation,
        cell_width=_positive_number(message, "cellWidth"),
        cell_height=_positive_number(message, "cellHeight"),
        width=_positive_int(message, "width"),
        height=_positive_int(message, "height"),
        flags=flags,
        color=color,
    )


def parse_scale(message: Mapping) -> Optional[Union[int, float]]:
    """New scale value of a scale-* message, or None when it is unusable."""
    value = message.get("scale")
    if not _is_number(value) or value <= 0:
        _log_warning(f"Ignoring {message.get('type')} with invalid scale {value!r}")
        return None
    return value


def frame_image(identifier: str, width: int, height: int, payload: str) -> str:
    return f"{identifier}:image:{width}:{height}:{len(payload)}:{payload}"


def frame_error(identifier: str, message: str) -> str:
    return f"{identifier}:error:0:0:{len(message)}:{message}"


class ResponseWriter:
    """Writes frames to the output stream, one whole frame at a time."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def _write(self, frame: str) -> None:
        with self._lock:
            self.stream.write(frame)
            self.stream.flush()

    def image(self, identifier: str, width: int, height: int, path: Union[str, Path]) -> None:
        self._write(frame_image(identifier, width, height, str(path)))

    def error(self, identifier: str, message: str) -> None:
        self._write(frame_error(identifier, message))
