"""
Preamble macro parsing.

Extracts user macro definitions from a LaTeX preamble so every equation can be
typeset with them. Supported forms:

    \\newcommand{\\R}{\\mathbb{R}}            -> {"R": "\\mathbb{R}"}
    \\renewcommand{\\norm}[1]{\\|#1\\|}        -> {"norm": ("\\|#1\\|", 1)}
    \\providecommand{\\eps}{\\varepsilon}      -> {"eps": "\\varepsilon"}
    \\def\\pair#1#2{(#1, #2)}                  -> {"pair": ("(#1, #2)", 2)}
    \\DeclareMathOperator{\\tr}{tr}           -> {"tr": "\\mathop{\\mathrm{tr}}"}
    \\DeclareMathOperator*{\\argmax}{arg\\,max} -> {"argmax": "\\mathop{\\operatorname*{arg\\,max}}"}
"""

import re
from pathlib import Path
from typing import Dict, Tuple, Union

from mdmath.contexts.typesetting.logger import _log_debug, log_macros_loaded
from mdmath.utils.text_processing import extract_balanced_delimiters

MacroDefinition = Union[str, Tuple[str, int]]


class PreambleError(Exception):
    """Raised when the configured preamble cannot be read. Startup error."""

    pass


# Header of any supported definition, up to (and including) the opening brace
# of its body (or of the operator text)
DEFINITION_HEAD = re.compile(
    r"\\(?P<command>newcommand|renewcommand|providecommand)\*?\s*"
    r"\{\\(?P<name>[A-Za-z@]+)\}\s*(?:\[(?P<arity>\d+)\])?\s*\{"
    r"|\\def\s*\\(?P<def_name>[A-Za-z@]+)(?P<params>(?:#\d)*)\s*\{"
    r"|\\DeclareMathOperator(?P<star>\*?)\s*\{\\(?P<op_name>[A-Za-z@]+)\}\s*\{"
)


def _operator_definition(operator: str, starred: bool) -> str:
    if starred:
        # Starred operators take limits above/below in display style
        return f"\\mathop{{\\operatorname*{{{operator}}}}}"
    return f"\\mathop{{\\mathrm{{{operator}}}}}"


def parse_latex_commands(content: str) -> Dict[str, MacroDefinition]:
    """
    Parse macro definitions from LaTeX source.

    Bodies are read with balanced-brace scanning, so nested groups such as
    ``{\\mathbb{R}^{n}}`` are kept intact. Definitions with unbalanced bodies
    are skipped. Definitions are applied in source order: later ones override
    earlier ones, except \\providecommand, which never replaces an existing
    macro.

    Args:
        content: Preamble document text

    Returns:
        Mapping of macro name (without backslash) to its replacement, or to
        (replacement, arity) when the macro takes arguments
    """
    macros: Dict[str, MacroDefinition] = {}

    for match in DEFINITION_HEAD.finditer(content):
        name = match.group("name") or match.group("def_name") or match.group("op_name")
        try:
            body, _ = extract_balanced_delimiters(content, match.end())
        except ValueError:
            _log_debug(f"Skipping \\{name}: unbalanced definition body")
            continue

        if match.group("op_name"):
            definition: MacroDefinition = _operator_definition(body, bool(match.group("star")))
        else:
            if match.group("def_name"):
                arity = match.group("params").count("#")
            else:
                arity = int(match.group("arity") or 0)
            replacement = body.strip()
            definition = (replacement, arity) if arity > 0 else replacement

        if match.group("command") == "providecommand" and name in macros:
            continue
        macros[name] = definition

    return macros


def load_preamble_macros(path: Path) -> Dict[str, MacroDefinition]:
    """
    Read a preamble file and parse its macros.

    Args:
        path: Preamble document path

    Returns:
        Parsed macro mapping

    Raises:
        PreambleError: If the file cannot be read
    """
    path = Path(path).expanduser()
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PreambleError(f"Cannot load preamble {path}: {e}") from e
    macros = parse_latex_commands(content)
    log_macros_loaded(str(path), macros)
    return macros
