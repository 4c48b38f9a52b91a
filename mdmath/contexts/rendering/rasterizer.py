"""
SVG rasterization and box fitting.

rsvg-convert turns SVG markup into PNG bytes; Pillow measures rasters and fits
them into the final pixel box on a transparent canvas.
"""

import io
import os
import subprocess
import threading
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv
from PIL import Image, UnidentifiedImageError

from mdmath.contexts.rendering.exceptions import RasterizerError
from mdmath.contexts.rendering.logger import _log_debug

load_dotenv()

RSVG_CONVERT = os.getenv("RSVG_CONVERT", "rsvg-convert")
TOOL_TIMEOUT = float(os.getenv("MDMATH_TOOL_TIMEOUT", "30"))


def _open_png(png: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(png))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise RasterizerError(f"Invalid raster data: {e}") from e
    return image


class RsvgRasterizer:
    """Rasterizer backed by rsvg-convert and Pillow. Safe to share between worker threads."""

    def __init__(self, rsvg_convert: str = RSVG_CONVERT, timeout: float = TOOL_TIMEOUT):
        self.rsvg_convert = rsvg_convert
        self.timeout = timeout

    def rasterize(
        self,
        svg: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        zoom: Optional[float] = None,
    ) -> bytes:
        """
        Convert SVG markup to PNG bytes.

        Either a target box (width and height, aspect ratio kept) or a zoom
        factor must be given.

        Raises:
            RasterizerError: If rsvg-convert is missing, fails or times out
        """
        cmd = [self.rsvg_convert, "--format", "png"]
        if zoom is not None:
            cmd += ["--zoom", f"{zoom}"]
        elif width is not None and height is not None:
            cmd += ["--width", str(width), "--height", str(height), "--keep-aspect-ratio"]
        else:
            raise ValueError("rasterize() needs either width and height or zoom")

        _log_debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input=svg.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise RasterizerError(f"rsvg-convert not found: {self.rsvg_convert}") from e
        except subprocess.TimeoutExpired as e:
            raise RasterizerError(f"rsvg-convert timed out after {self.timeout:g}s") from e

        if result.returncode != 0 or not result.stdout:
            detail = result.stderr.decode("utf-8", "replace").strip().splitlines()
            reason = detail[-1] if detail else f"exit status {result.returncode}"
            raise RasterizerError(f"rsvg-convert failed: {reason}")

        return result.stdout

    def dimensions(self, png: bytes) -> Tuple[int, int]:
        """Pixel (width, height) of a PNG."""
        with _open_png(png) as image:
            return image.size

    def fit_to(
        self, png: bytes, output_path: Path, width: int, height: int, center: bool = False
    ) -> None:
        """
        Fit a raster into a width x height box and save it as PNG.

        Rasters larger than the box are scaled down keeping their aspect
        ratio; smaller ones are padded with transparency. The image sits in
        the middle of the box when center is set, top-left otherwise.

        The file is written next to its destination and moved into place, so
        two renders racing on the same path never leave a torn file.

        Raises:
            RasterizerError: If the raster cannot be decoded or written
        """
        output_path = Path(output_path)
        with _open_png(png) as source:
            image = source.convert("RGBA")

        image.thumbnail((width, height), Image.Resampling.LANCZOS)

        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        if center:
            offset = ((width - image.width) // 2, (height - image.height) // 2)
        else:
            offset = (0, 0)
        canvas.paste(image, offset)

        partial = output_path.with_name(
            f".{output_path.name}.{os.getpid()}-{threading.get_ident()}.part"
        )
        try:
            canvas.save(partial, format="PNG")
            os.replace(partial, output_path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise RasterizerError(f"Cannot write {output_path}: {e.strerror or e}") from e
