"""
Serving context logger.

Provides logging interface for serving context with automatic [serve] prefix.
All serving modules should import from this module, not from loguru directly.
"""

from pathlib import Path

from loguru import logger

from mdmath.contexts.rendering.exceptions import (
    EmptyEquationError,
    InvalidRequestError,
    TypesettingError,
)
from mdmath.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[serve]"


def setup_serving_logger(log_dir: Path = None, level: str = None, tools: dict = None) -> Path:
    """
    Setup logger for the server process.

    Args:
        log_dir: Directory for the file sink (None: console only)
        level: Console level override
        tools: Tool binaries, recorded in the provenance header

    Returns:
        Path to log file, or None when file logging is disabled
    """
    kwargs = {"level": level} if level else {}
    return _setup_logger(
        context_name="serve", log_dir=log_dir, extra_provenance=tools, **kwargs
    )


def _log_info(message: str) -> None:
    """Log info message with [serve] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [serve] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [serve] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [serve] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def _log_exception(message: str) -> None:
    """Log message with [serve] prefix and the active traceback."""
    logger.exception(f"{CONTEXT_PREFIX} {message}")


# High-level serving-specific logging helpers


def log_server_start(workspace: Path, num_macros: int, workers: int) -> None:
    _log_info(f"Workspace: {workspace}")
    _log_info(f"Serving with {workers} render workers, {num_macros} macros")


def log_server_stop(stats: dict) -> None:
    _log_info(
        f"Input closed; {stats['rendered']} cached images, "
        f"{stats['typeset']} typeset equations"
    )


def log_request_failure(identifier: str, error: Exception) -> None:
    """
    Log a render failure that is about to become an error frame.

    Malformed input is a warning; anything from the tools is an error.
    """
    if isinstance(error, (EmptyEquationError, TypesettingError, InvalidRequestError)):
        _log_warning(f"Request {identifier}: {error}")
    else:
        _log_error(f"Request {identifier} failed ({type(error).__name__}): {error}")


def log_cleanup(removed: int, failed: int, workspace: Path, workspace_removed: bool) -> None:
    _log_debug(f"Cleanup removed {removed} files ({failed} failed)")
    if workspace_removed:
        _log_debug(f"Removed workspace {workspace}")
    else:
        _log_debug(f"Workspace {workspace} left in place")
