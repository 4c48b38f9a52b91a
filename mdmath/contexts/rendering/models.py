"""Value types flowing through the render pipeline."""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

Number = Union[int, float]

FLAG_DYNAMIC = 1 << 0
FLAG_CENTER = 1 << 1


@dataclass(frozen=True)
class RenderRequest:
    """
    A decoded render request.

    Attributes:
        identifier: Caller-assigned correlation token, echoed in the response
        equation: LaTeX source
        cell_width: Width of one host grid cell in pixels
        cell_height: Height of one host grid cell in pixels
        width: Requested span in cells (minimum span in dynamic mode)
        height: Requested span in cells (minimum span in dynamic mode)
        flags: Bit field, bit 0 dynamic-fit, bit 1 center
        color: Foreground color, passed literally to the rasterizer
    """

    identifier: str
    equation: str
    cell_width: Number
    cell_height: Number
    width: int
    height: int
    flags: int
    color: str

    @property
    def is_dynamic(self) -> bool:
        return bool(self.flags & FLAG_DYNAMIC)

    @property
    def is_centered(self) -> bool:
        return bool(self.flags & FLAG_CENTER)


@dataclass(frozen=True)
class CacheKey:
    """
    Rendered-image cache key.

    Every field takes part in equality, so requests that differ anywhere are
    separate entries even when they would produce the same picture.
    """

    equation: str
    cell_width: Number
    width: int
    cell_height: Number
    height: int
    flags: int
    color: str

    @classmethod
    def from_request(cls, request: RenderRequest) -> "CacheKey":
        return cls(
            equation=request.equation,
            cell_width=request.cell_width,
            width=request.width,
            cell_height=request.cell_height,
            height=request.height,
            flags=request.flags,
            color=request.color,
        )

    def __str__(self) -> str:
        return (
            f"{self.equation}_{self.cell_width}*{self.width}"
            f"x{self.cell_height}*{self.height}_{self.flags}_{self.color}"
        )


@dataclass(frozen=True)
class RenderedEquation:
    """
    A materialized image.

    Attributes:
        equation: LaTeX source
        filename: PNG path inside the workspace
        width: Final span in cells (after dynamic auto-fit)
        height: Final span in cells (after dynamic auto-fit)
    """

    equation: str
    filename: Path
    width: int
    height: int
