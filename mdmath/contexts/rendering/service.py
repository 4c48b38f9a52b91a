"""
Render service.

Owns the state shared by every in-flight render (scale multipliers and the two
caches) and runs the pipeline for one request:

    blank check -> rendered cache -> typeset cache -> materialize -> store
"""

from concurrent.futures import Executor
from pathlib import Path
from typing import Optional

from mdmath.contexts.rendering.cache import RenderCache
from mdmath.contexts.rendering.exceptions import EmptyEquationError, TypesettingError
from mdmath.contexts.rendering.materializer import ImageMaterializer
from mdmath.contexts.rendering.models import CacheKey, RenderedEquation, RenderRequest
from mdmath.contexts.rendering.scale import ScaleState
from mdmath.contexts.typesetting import TypesetFailure


class RenderService:
    """One instance per process, handed to the dispatcher."""

    def __init__(
        self,
        typesetter,
        rasterizer,
        workspace: Path,
        executor: Optional[Executor] = None,
        scale: Optional[ScaleState] = None,
    ):
        """
        Args:
            typesetter: Object with typeset(equation) -> TypesetResult
            rasterizer: Object with rasterize(), dimensions() and fit_to()
            workspace: Directory receiving the PNG files (must exist)
            executor: Pool running the blocking tool calls
            scale: Initial scale state (defaults to 1 and 1)
        """
        self.workspace = Path(workspace)
        self.scale = scale or ScaleState()
        self.cache = RenderCache(typesetter, executor=executor)
        self.materializer = ImageMaterializer(rasterizer, self.workspace, executor=executor)

    async def render(self, request: RenderRequest) -> RenderedEquation:
        """
        Render a request, reusing cached work where possible.

        Raises:
            EmptyEquationError: If the equation is blank
            TypesettingError: If the equation is malformed (cached outcome)
            ToolingError: If the typesetter or rasterizer could not run
        """
        if not request.equation or not request.equation.strip():
            raise EmptyEquationError()

        key = CacheKey.from_request(request)
        cached = self.cache.lookup_rendered(key)
        if cached is not None:
            return cached

        # One snapshot per render keeps fixed and dynamic arithmetic consistent
        scale = self.scale.snapshot()

        typeset = await self.cache.lookup_typeset(request.equation)
        if isinstance(typeset, TypesetFailure):
            raise TypesettingError(typeset.message)

        rendered = await self.materializer.materialize(request, typeset.svg, scale)
        self.cache.put(key, rendered)
        return rendered
