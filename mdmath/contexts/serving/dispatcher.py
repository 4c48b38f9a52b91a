"""
Request dispatcher.

Routes decoded requests: render requests start an independent task and answer
with exactly one frame when it finishes; scale updates mutate the service's
scale state immediately. Unknown request types are ignored.

Renders run concurrently, so frames can leave in a different order than the
requests arrived; clients correlate them by identifier.
"""

import asyncio
from typing import Mapping, Optional, Set

from mdmath.contexts.rendering import RenderError, RenderService
from mdmath.contexts.serving.logger import (
    _log_debug,
    _log_exception,
    _log_warning,
    log_request_failure,
)
from mdmath.contexts.serving.protocol import (
    REQUEST_RENDER,
    REQUEST_SCALE_DYNAMIC,
    REQUEST_SCALE_INTERNAL,
    ResponseWriter,
    parse_render_request,
    parse_scale,
    request_identifier,
)


class RequestDispatcher:
    """Turns decoded requests into render tasks and scale updates."""

    def __init__(self, service: RenderService, writer: ResponseWriter):
        self.service = service
        self.writer = writer
        self._inflight: Set[asyncio.Task] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def dispatch(self, message: Mapping) -> Optional[asyncio.Task]:
        """
        Route one decoded request. Must be called from the running event loop.

        Args:
            message: Decoded request object

        Returns:
            The render task for render requests, None otherwise
        """
        kind = message.get("type")

        if kind == REQUEST_RENDER:
            task = asyncio.create_task(self.handle_render(message))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            return task

        if kind == REQUEST_SCALE_DYNAMIC:
            value = parse_scale(message)
            if value is not None:
                self.service.scale.set_dynamic(value)
        elif kind == REQUEST_SCALE_INTERNAL:
            value = parse_scale(message)
            if value is not None:
                self.service.scale.set_internal(value)
        else:
            _log_debug(f"Ignoring request of type {kind!r}")
        return None

    async def handle_render(self, message: Mapping) -> None:
        """
        Run one render request and write its frame.

        Every failure is converted to an error frame here; nothing a single
        request does can stop the server.
        """
        identifier = request_identifier(message)
        if identifier is None:
            _log_warning("Dropping render request without identifier")
            return

        try:
            request = parse_render_request(message)
            rendered = await self.service.render(request)
        except RenderError as e:
            log_request_failure(identifier, e)
            self.writer.error(identifier, e.message)
        except Exception as e:
            _log_exception(f"Request {identifier} failed unexpectedly")
            self.writer.error(identifier, str(e) or type(e).__name__)
        else:
            self.writer.image(identifier, rendered.width, rendered.height, rendered.filename)

    async def drain(self) -> None:
        """Wait for every in-flight render to answer."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
