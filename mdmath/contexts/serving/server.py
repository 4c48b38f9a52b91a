"""
Server loop.

Wires the typesetter, rasterizer, render service, dispatcher and lifecycle
together and feeds stdin lines to the dispatcher until EOF. Reading never waits
for a render: each render request runs as its own task while the loop keeps
consuming input.
"""

import asyncio
import os
import sys
from concurrent.futures import Executor
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Optional, TextIO

from dotenv import load_dotenv

from mdmath.contexts.rendering import RenderService, RsvgRasterizer
from mdmath.contexts.serving.dispatcher import RequestDispatcher
from mdmath.contexts.serving.lifecycle import WORKSPACE_ROOT, LifecycleManager, Workspace
from mdmath.contexts.serving.logger import (
    _log_debug,
    _log_warning,
    log_server_start,
    log_server_stop,
)
from mdmath.contexts.serving.protocol import ResponseWriter, decode_line
from mdmath.contexts.typesetting import LatexTypesetter, load_preamble_macros
from mdmath.utils.concurrency import make_render_executor, run_blocking

load_dotenv()

PREAMBLE_PATH = os.getenv("MDMATH_PREAMBLE_PATH")
RENDER_WORKERS = int(os.getenv("MDMATH_RENDER_WORKERS", "4"))

# Longest accepted input line
MAX_LINE_BYTES = 1 << 20


async def _file_lines(stream: TextIO, limit: int) -> AsyncIterator[str]:
    while True:
        line = await run_blocking(stream.readline)
        if not line:
            break
        if isinstance(line, bytes):
            line = line.decode("utf-8", "replace")
        if len(line.encode("utf-8")) > limit:
            _log_warning(f"Dropping input line longer than {limit} bytes")
            continue
        yield line


async def stdin_lines(stream: TextIO = None, limit: int = MAX_LINE_BYTES) -> AsyncIterator[str]:
    """
    Yield decoded lines from stdin without blocking the event loop.

    Pipes, sockets and terminals are read through an asyncio transport;
    anything else (stdin redirected from a regular file) is read line by line
    on the default executor. Lines longer than limit bytes are dropped with a
    warning and reading continues.
    """
    stream = stream or sys.stdin
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    try:
        transport, _ = await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), stream
        )
    except ValueError:
        _log_debug("Input is not a pipe, reading it on the executor")
        async for line in _file_lines(stream, limit):
            yield line
        return

    try:
        while True:
            try:
                line = await reader.readline()
            except ValueError as e:
                # The reader has already discarded the oversized chunk
                _log_warning(f"Dropping input line longer than {limit} bytes ({e})")
                continue
            if not line:
                break
            yield line.decode("utf-8", "replace")
    finally:
        transport.close()


async def serve(dispatcher: RequestDispatcher, lines: AsyncIterable[str]) -> None:
    """
    Dispatch every input line, then wait for in-flight renders.

    Args:
        dispatcher: Dispatcher bound to the render service
        lines: Raw input lines
    """
    async for line in lines:
        message = decode_line(line)
        if message is not None:
            dispatcher.dispatch(message)
    await dispatcher.drain()


def build_service(
    workspace: Path,
    preamble: Optional[Path] = None,
    executor: Optional[Executor] = None,
) -> RenderService:
    """
    Assemble a RenderService backed by latex/dvisvgm and rsvg-convert.

    Raises:
        PreambleError: If the preamble cannot be read
    """
    macros = load_preamble_macros(preamble) if preamble else {}
    return RenderService(
        typesetter=LatexTypesetter(macros=macros),
        rasterizer=RsvgRasterizer(),
        workspace=workspace,
        executor=executor,
    )


def run_server(
    preamble: Optional[Path] = Path(PREAMBLE_PATH) if PREAMBLE_PATH else None,
    workspace_root: Path = WORKSPACE_ROOT,
    workers: int = RENDER_WORKERS,
) -> None:
    """
    Run the server until stdin closes.

    Startup errors (workspace creation, unreadable preamble) propagate before
    any request is read.

    Raises:
        WorkspaceError: If the workspace cannot be created
        PreambleError: If the preamble cannot be read
    """
    lifecycle = LifecycleManager(Workspace(root=workspace_root))
    workspace = lifecycle.start()
    lifecycle.install()

    executor = make_render_executor(workers)
    try:
        service = build_service(workspace, preamble=preamble, executor=executor)
        lifecycle.attach(service.cache)
        log_server_start(workspace, len(service.cache.typesetter.macros), workers)

        dispatcher = RequestDispatcher(service, ResponseWriter(sys.stdout))
        asyncio.run(serve(dispatcher, stdin_lines()))
        log_server_stop(service.cache.stats())
    finally:
        executor.shutdown(wait=True)
        lifecycle.cleanup()
