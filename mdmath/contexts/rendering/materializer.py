"""
Image materialization.

Turns typeset SVG into the final PNG in the workspace: recolors the markup,
rasterizes it at the size (fixed) or zoom (dynamic) chosen by the sizing
rules, fits the raster into the final box and writes it under a
content-derived name.
"""

import re
import time
from concurrent.futures import Executor
from pathlib import Path
from typing import Optional

from mdmath.contexts.rendering.logger import _log_debug, log_render_result
from mdmath.contexts.rendering.models import RenderedEquation, RenderRequest
from mdmath.contexts.rendering.scale import Scale
from mdmath.contexts.rendering.sizing import (
    ImageBox,
    dynamic_box,
    dynamic_zoom,
    fixed_box,
    format_dimension,
)
from mdmath.utils.concurrency import run_blocking
from mdmath.utils.text_processing import short_digest

# Foreground marker emitted by the typesetter
COLOR_PLACEHOLDER = "currentColor"

# Inline style that could override the substituted fill color
INLINE_STYLE_PATTERN = re.compile(r'style="[^"]+"')

DIGEST_LENGTH = 7


def colorize_svg(svg: str, color: str) -> str:
    """Replace the color placeholder with a literal color and drop the first inline style."""
    svg = svg.replace(COLOR_PLACEHOLDER, color)
    return INLINE_STYLE_PATTERN.sub("", svg, count=1)


def output_filename(workspace: Path, equation: str, box: ImageBox) -> Path:
    """
    Path of the PNG for an equation at a given physical size.

    Only the equation text and the pixel box take part, so different requests
    that land on the same box share (and overwrite) one file.
    """
    digest = short_digest(equation, DIGEST_LENGTH)
    width = format_dimension(box.pixel_width)
    height = format_dimension(box.pixel_height)
    return Path(workspace) / f"{digest}_{width}x{height}.png"


class ImageMaterializer:
    """Drives the rasterizer and writes finished images into the workspace."""

    def __init__(self, rasterizer, workspace: Path, executor: Optional[Executor] = None):
        """
        Args:
            rasterizer: Object with rasterize(), dimensions() and fit_to()
            workspace: Directory receiving the PNG files
            executor: Pool the rasterizer runs on (None: loop default)
        """
        self.rasterizer = rasterizer
        self.workspace = Path(workspace)
        self.executor = executor

    async def _call(self, func, *args, **kwargs):
        return await run_blocking(func, *args, executor=self.executor, **kwargs)

    async def materialize(self, request: RenderRequest, svg: str, scale: Scale) -> RenderedEquation:
        """
        Produce the PNG for a request.

        Args:
            request: Render request (size, flags and color are read from it)
            svg: Typeset SVG markup for request.equation
            scale: Scale snapshot taken when the render started

        Returns:
            RenderedEquation with the final span in cells

        Raises:
            RasterizerError: If rasterization or the file write fails
        """
        start = time.perf_counter()
        svg = colorize_svg(svg, request.color)

        if request.is_dynamic:
            zoom = dynamic_zoom(request.cell_height, scale)
            base_png = await self._call(self.rasterizer.rasterize, svg, zoom=zoom)
            natural_width, natural_height = await self._call(self.rasterizer.dimensions, base_png)
            box = dynamic_box(
                natural_width,
                natural_height,
                request.cell_width,
                request.cell_height,
                request.width,
                request.height,
                scale,
            )
            _log_debug(
                f"Dynamic fit: zoom {zoom:g}, natural {natural_width}x{natural_height} px "
                f"-> {box.width}x{box.height} cells"
            )
        else:
            box = fixed_box(
                request.cell_width, request.cell_height, request.width, request.height, scale
            )
            raster_width, raster_height = box.raster_size
            base_png = await self._call(
                self.rasterizer.rasterize, svg, width=raster_width, height=raster_height
            )

        filename = output_filename(self.workspace, request.equation, box)
        raster_width, raster_height = box.raster_size
        await self._call(
            self.rasterizer.fit_to,
            base_png,
            filename,
            raster_width,
            raster_height,
            center=request.is_centered,
        )

        rendered = RenderedEquation(
            equation=request.equation, filename=filename, width=box.width, height=box.height
        )
        log_render_result(
            rendered, box.pixel_width, box.pixel_height, time.perf_counter() - start
        )
        return rendered
