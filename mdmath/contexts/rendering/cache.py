"""
Two-tier render cache.

- Typeset cache: equation text -> TypesetOk / TypesetFailure. Independent of
  size, color and flags, so one typeset serves every render of an equation.
- Rendered cache: CacheKey -> RenderedEquation.

Both tables are unbounded and live for the whole process. Every rendered entry
is also appended to an ordered list the lifecycle manager deletes at exit.

Reads and writes are locked, but a lookup and the work that fills a miss are
not one atomic step: two concurrent requests for the same key may both render,
and the last put wins.
"""

import threading
from concurrent.futures import Executor
from typing import Dict, List, Optional, Union

from mdmath.contexts.rendering.exceptions import ToolingError
from mdmath.contexts.rendering.logger import log_cache_hit, log_cache_miss
from mdmath.contexts.rendering.models import CacheKey, RenderedEquation
from mdmath.contexts.typesetting import ToolingFailure, TypesetFailure, TypesetOk
from mdmath.utils.concurrency import run_blocking

CachedTypeset = Union[TypesetOk, TypesetFailure]


class RenderCache:
    """Typeset and rendered-image caches shared by all in-flight renders."""

    def __init__(self, typesetter, executor: Optional[Executor] = None):
        """
        Args:
            typesetter: Object with typeset(equation) -> TypesetResult
            executor: Pool the typesetter runs on (None: loop default)
        """
        self.typesetter = typesetter
        self.executor = executor
        self._lock = threading.Lock()
        self._typeset: Dict[str, CachedTypeset] = {}
        self._rendered: Dict[CacheKey, RenderedEquation] = {}
        self._produced: List[RenderedEquation] = []

    async def lookup_typeset(self, equation: str) -> CachedTypeset:
        """
        Typeset result for an equation, invoking the typesetter on a miss.

        Successes and malformed-LaTeX failures are cached. Tooling failures are
        not cached and raise on every call.

        Raises:
            ToolingError: If the typesetter could not run
        """
        with self._lock:
            cached = self._typeset.get(equation)
        if cached is not None:
            log_cache_hit("typeset", equation)
            return cached

        log_cache_miss("typeset", equation)
        result = await run_blocking(self.typesetter.typeset, equation, executor=self.executor)

        if isinstance(result, ToolingFailure):
            raise ToolingError(result.message)

        with self._lock:
            self._typeset[equation] = result
        return result

    def lookup_rendered(self, key: CacheKey) -> Optional[RenderedEquation]:
        with self._lock:
            rendered = self._rendered.get(key)
        if rendered is None:
            log_cache_miss("rendered", key)
        else:
            log_cache_hit("rendered", key)
        return rendered

    def put(self, key: CacheKey, rendered: RenderedEquation) -> None:
        """Store a rendered image. Last writer wins."""
        with self._lock:
            self._rendered[key] = rendered
            self._produced.append(rendered)

    def produced(self) -> List[RenderedEquation]:
        """Every image ever stored, oldest first."""
        with self._lock:
            return list(self._produced)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "typeset": len(self._typeset),
                "rendered": len(self._rendered),
                "produced": len(self._produced),
            }
