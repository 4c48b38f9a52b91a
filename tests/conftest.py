"""Shared fixtures: in-memory stand-ins for latex/dvisvgm and rsvg-convert."""

import asyncio
import io
import threading
from pathlib import Path

import pytest

from mdmath.contexts.rendering import RasterizerError, RenderService
from mdmath.contexts.serving import RequestDispatcher, ResponseWriter
from mdmath.contexts.typesetting import ToolingFailure, TypesetFailure, TypesetOk

FAKE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 4" style="color:black">'
    '<path fill="currentColor" stroke="currentColor" d="M0 0h10v4z"/></svg>'
)


class FakeTypesetter:
    """
    Typesetter double.

    Equations containing "\\undefined" are malformed; equations listed in
    `broken` fail as tooling errors.
    """

    def __init__(self):
        self.calls = []
        self.broken = set()
        self.macros = {}
        self._lock = threading.Lock()

    def typeset(self, equation):
        with self._lock:
            self.calls.append(equation)
        if equation in self.broken:
            return ToolingFailure("LaTeX compiler not found: latex")
        if "\\undefined" in equation:
            return TypesetFailure("Undefined control sequence.")
        return TypesetOk(FAKE_SVG)


class FakeRasterizer:
    """
    Rasterizer double.

    "PNG" bytes carry their own size as b"<w>x<h>". At zoom 1 an equation is
    natural_size pixels large.
    """

    def __init__(self, natural_size=(30, 10)):
        self.natural_size = natural_size
        self.rasterize_calls = []
        self.fit_calls = []
        self.fail_fit = False
        self._lock = threading.Lock()

    def rasterize(self, svg, width=None, height=None, zoom=None):
        with self._lock:
            self.rasterize_calls.append({"svg": svg, "width": width, "height": height, "zoom": zoom})
        if zoom is not None:
            width = round(self.natural_size[0] * zoom)
            height = round(self.natural_size[1] * zoom)
        return f"{width}x{height}".encode()

    def dimensions(self, png):
        width, height = png.decode().split("x")
        return int(width), int(height)

    def fit_to(self, png, output_path, width, height, center=False):
        with self._lock:
            self.fit_calls.append(
                {"png": png, "path": Path(output_path), "width": width, "height": height, "center": center}
            )
        if self.fail_fit:
            raise RasterizerError("rsvg-convert failed: out of memory")
        Path(output_path).write_bytes(b"\x89PNG fake")


@pytest.fixture
def typesetter():
    return FakeTypesetter()


@pytest.fixture
def rasterizer():
    return FakeRasterizer()


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "mdmath-test"
    path.mkdir()
    return path


@pytest.fixture
def service(typesetter, rasterizer, workspace):
    return RenderService(typesetter=typesetter, rasterizer=rasterizer, workspace=workspace)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def dispatcher(service, output):
    return RequestDispatcher(service, ResponseWriter(output))


def render_message(identifier="1", equation="x^2", **overrides):
    """Render request as decoded from the wire, with scenario A defaults."""
    message = {
        "type": "render",
        "identifier": identifier,
        "equation": equation,
        "cellWidth": 8,
        "cellHeight": 16,
        "width": 1,
        "height": 1,
        "flags": 0,
        "color": "#ffffff",
    }
    message.update(overrides)
    return message


def run_messages(dispatcher, *messages):
    """Dispatch messages in order inside one event loop and wait for every answer."""

    async def _run():
        for message in messages:
            dispatcher.dispatch(message)
        await dispatcher.drain()

    asyncio.run(_run())


@pytest.fixture
def make_message():
    return render_message


@pytest.fixture
def run(dispatcher):
    """run(*messages) dispatches on the default dispatcher and returns the output so far."""

    def _run(*messages):
        run_messages(dispatcher, *messages)
        return dispatcher.writer.stream.getvalue()

    return _run


@pytest.fixture
def rasterizer_factory():
    return FakeRasterizer
