"""
Typesetting context logger.

Provides logging interface for typesetting context with automatic [typeset] prefix.
All typesetting modules should import from this module, not from loguru directly.
"""

from loguru import logger

from mdmath.contexts.typesetting.results import TypesetFailure, TypesetOk, TypesetResult

CONTEXT_PREFIX = "[typeset]"


def _log_info(message: str) -> None:
    """Log info message with [typeset] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [typeset] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [typeset] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [typeset] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_macros_loaded(source: str, macros: dict) -> None:
    """Log the macro table injected into every document."""
    _log_info(f"Loaded {len(macros)} macros from {source}")
    for name, definition in macros.items():
        _log_debug(f"  \\{name} -> {definition}")


def log_typeset_result(equation: str, result: TypesetResult, elapsed_time: float) -> None:
    """
    Log the outcome of a single typesetter invocation.

    Args:
        equation: LaTeX source that was typeset
        result: TypesetOk, TypesetFailure or ToolingFailure
        elapsed_time: Wall time spent in latex + dvisvgm
    """
    if isinstance(result, TypesetOk):
        _log_debug(f"Typeset {equation!r} ({len(result.svg)} bytes, {elapsed_time:.2f}s)")
    elif isinstance(result, TypesetFailure):
        _log_warning(f"Malformed equation {equation!r}: {result.message}")
    else:
        _log_error(f"Typesetter tooling failed for {equation!r}: {result.message}")
