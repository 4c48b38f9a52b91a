"""
Rendering Context

Responsibilities:
- Caches typeset SVG per equation and finished images per request parameters
- Reconciles the host's cell grid with physical pixels (fixed and dynamic modes)
- Rasterizes SVG and writes content-named PNG files into the workspace
- Holds the process-wide scale multipliers

Owns: RenderService, RenderCache, ScaleState, sizing rules, ImageMaterializer
Never: Reads or writes the wire protocol
"""

from mdmath.contexts.rendering.cache import RenderCache
from mdmath.contexts.rendering.exceptions import (
    EmptyEquationError,
    InvalidRequestError,
    RasterizerError,
    RenderError,
    ToolingError,
    TypesettingError,
    WorkspaceError,
)
from mdmath.contexts.rendering.materializer import ImageMaterializer
from mdmath.contexts.rendering.models import CacheKey, RenderedEquation, RenderRequest
from mdmath.contexts.rendering.rasterizer import RsvgRasterizer
from mdmath.contexts.rendering.scale import Scale, ScaleState
from mdmath.contexts.rendering.service import RenderService

__all__ = [
    "RenderService",
    "RenderCache",
    "ImageMaterializer",
    "RsvgRasterizer",
    "Scale",
    "ScaleState",
    "RenderRequest",
    "RenderedEquation",
    "CacheKey",
    # Errors
    "RenderError",
    "EmptyEquationError",
    "TypesettingError",
    "ToolingError",
    "RasterizerError",
    "InvalidRequestError",
    "WorkspaceError",
]
