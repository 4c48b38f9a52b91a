"""
Typesetting Context

Responsibilities:
- Turns LaTeX equation source into SVG markup
- Classifies typesetter outcomes (success, malformed LaTeX, tooling failure)
- Parses user macro definitions from a preamble document at startup

Owns: LaTeX document generation, latex/dvisvgm invocation, macro parsing
Never: Caches results, decides image sizes
"""

from mdmath.contexts.typesetting.macros import (
    PreambleError,
    load_preamble_macros,
    parse_latex_commands,
)
from mdmath.contexts.typesetting.results import (
    ToolingFailure,
    TypesetFailure,
    TypesetOk,
    TypesetResult,
)
from mdmath.contexts.typesetting.typesetter import LatexTypesetter

__all__ = [
    "LatexTypesetter",
    "TypesetOk",
    "TypesetFailure",
    "ToolingFailure",
    "TypesetResult",
    "parse_latex_commands",
    "load_preamble_macros",
    "PreambleError",
]
