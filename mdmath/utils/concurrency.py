"""Bridging blocking tool calls into the asyncio loop."""

import asyncio
import functools
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional


def make_render_executor(max_workers: int) -> ThreadPoolExecutor:
    """Worker pool for subprocess and Pillow calls."""
    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="RenderWorker")


async def run_blocking(
    func: Callable[..., Any], *args: Any, executor: Optional[Executor] = None, **kwargs: Any
) -> Any:
    """
    Run a blocking callable on the executor and await its result.

    Every call into the typesetter or rasterizer goes through here, which makes
    it a suspension point for the calling render task.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, functools.partial(func, *args, **kwargs))
