"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[render]"


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_cache_hit(cache_name: str, key) -> None:
    """Log a cache hit (key is logged through its str form)."""
    _log_debug(f"{cache_name} cache hit: {key}")


def log_cache_miss(cache_name: str, key) -> None:
    """Log a cache miss."""
    _log_debug(f"{cache_name} cache miss: {key}")


def log_scale_change(name: str, old: float, new: float) -> None:
    """
    Log a scale update.

    Cached renders keep the scale they were produced under.
    """
    _log_info(f"{name} scale {old:g} -> {new:g}")


def log_render_result(rendered, pixel_width, pixel_height, elapsed_time: float) -> None:
    """
    Log a freshly materialized image.

    Args:
        rendered: RenderedEquation written to the workspace
        pixel_width: Physical width of the image
        pixel_height: Physical height of the image
        elapsed_time: Time spent rasterizing and writing
    """
    _log_success(
        f"Rendered {rendered.equation!r} -> {rendered.filename.name} "
        f"({rendered.width}x{rendered.height} cells, {pixel_width}x{pixel_height} px, "
        f"{elapsed_time:.2f}s)"
    )
