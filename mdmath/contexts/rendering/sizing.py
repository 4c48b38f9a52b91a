"""
Cell/pixel sizing.

Two modes reconcile the host's character grid with physical pixels:

Fixed mode
    The image fills exactly the requested span:
    pixels = cells * cell_px * internal_scale.

Dynamic mode (auto-fit)
    The equation is rasterized at its natural size, zoomed by
    ``10 * dynamic * cell_height * internal / 96``. The natural size is
    converted back to cells and rounded up, never dropping below the requested
    span, and the final pixel box is derived from that span as in fixed mode.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from mdmath.contexts.rendering.models import Number
from mdmath.contexts.rendering.scale import Scale

# Reference DPI the typesetter's natural size is expressed in
REFERENCE_DPI = 96

# Natural-size zoom per pixel of cell height at reference DPI
DYNAMIC_ZOOM_FACTOR = 10


@dataclass(frozen=True)
class ImageBox:
    """
    Final size of a rendered image.

    Attributes:
        width: Span in cells
        height: Span in cells
        pixel_width: Physical width (exact product, may be fractional)
        pixel_height: Physical height (exact product, may be fractional)
    """

    width: int
    height: int
    pixel_width: Number
    pixel_height: Number

    @property
    def raster_size(self) -> Tuple[int, int]:
        """Physical size rounded to whole pixels, as handed to the raster tools."""
        return max(1, round(self.pixel_width)), max(1, round(self.pixel_height))


def physical_size(cells: Number, cell_px: Number, scale: Scale) -> Number:
    """Pixels covered by a span of cells at the current oversampling."""
    return cells * cell_px * scale.internal


def fixed_box(
    cell_width: Number, cell_height: Number, width: int, height: int, scale: Scale
) -> ImageBox:
    """
    Box for fixed mode: the requested span, converted to pixels.

    Args:
        cell_width: Pixel width of one cell
        cell_height: Pixel height of one cell
        width: Requested span in cells
        height: Requested span in cells
        scale: Scale snapshot for this render

    Returns:
        ImageBox spanning exactly width x height cells
    """
    return ImageBox(
        width=width,
        height=height,
        pixel_width=physical_size(width, cell_width, scale),
        pixel_height=physical_size(height, cell_height, scale),
    )


def dynamic_zoom(cell_height: Number, scale: Scale) -> float:
    """Zoom for the natural-size raster in dynamic mode."""
    return DYNAMIC_ZOOM_FACTOR * scale.dynamic * cell_height * scale.internal / REFERENCE_DPI


def natural_cells(natural_px: Number, cell_px: Number, scale: Scale) -> float:
    """Fractional number of cells a natural raster dimension covers."""
    return (natural_px / scale.internal) / cell_px


def dynamic_box(
    natural_width: Number,
    natural_height: Number,
    cell_width: Number,
    cell_height: Number,
    width: int,
    height: int,
    scale: Scale,
) -> ImageBox:
    """
    Box for dynamic mode.

    Args:
        natural_width: Pixel width of the raster produced at dynamic_zoom()
        natural_height: Pixel height of that raster
        cell_width: Pixel width of one cell
        cell_height: Pixel height of one cell
        width: Requested (minimum) span in cells
        height: Requested (minimum) span in cells
        scale: Scale snapshot for this render

    Returns:
        ImageBox whose span is at least width x height cells
    """
    final_width = max(width, math.ceil(natural_cells(natural_width, cell_width, scale)))
    final_height = max(height, math.ceil(natural_cells(natural_height, cell_height, scale)))
    return fixed_box(cell_width, cell_height, final_width, final_height, scale)


def format_dimension(value: Number) -> str:
    """Render a pixel dimension for filenames: integral values without a decimal point."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
