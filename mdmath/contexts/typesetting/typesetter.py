"""
LaTeX Typesetter

Typesets a single equation to SVG using latex + dvisvgm.

The equation is placed in a standalone document generated from
templates/equation.tex.jinja, compiled to DVI in a private temporary directory
and converted to SVG. dvisvgm is run with --currentcolor so black ink comes out
as the ``currentColor`` placeholder the rendering context recolors.
"""

import os
import re
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

from mdmath.contexts.typesetting.logger import _log_debug, log_typeset_result
from mdmath.contexts.typesetting.macros import MacroDefinition
from mdmath.contexts.typesetting.results import (
    ToolingFailure,
    TypesetFailure,
    TypesetOk,
    TypesetResult,
)

load_dotenv()

LATEX_COMPILER = os.getenv("LATEX_COMPILER", "latex")
DVISVGM = os.getenv("DVISVGM", "dvisvgm")
TOOL_TIMEOUT = float(os.getenv("MDMATH_TOOL_TIMEOUT", "30"))

TEMPLATES_PATH = Path(__file__).parent / "templates"
EQUATION_TEMPLATE = "equation.tex.jinja"

# LaTeX error lines: "! Undefined control sequence."
LATEX_ERROR_PATTERN = re.compile(r"^! (.+)$", re.MULTILINE)


def _parse_latex_errors(log_content: str) -> List[str]:
    """
    Collect LaTeX error messages from a log.

    Args:
        log_content: Content of the .log file (or the compiler's stdout)

    Returns:
        Error messages in the order they appear
    """
    return [match.group(1).strip() for match in LATEX_ERROR_PATTERN.finditer(log_content)]


def _macro_entries(macros: Mapping[str, MacroDefinition]) -> List[Dict[str, object]]:
    entries = []
    for name, definition in macros.items():
        if isinstance(definition, tuple):
            body, arity = definition
        else:
            body, arity = definition, 0
        entries.append({"name": name, "body": body, "arity": arity})
    return entries


class LatexTypesetter:
    """
    Typesetter backed by a TeX installation.

    Thread-safe: every call works in its own temporary directory, so the
    render worker pool may typeset several equations at once.
    """

    def __init__(
        self,
        macros: Optional[Mapping[str, MacroDefinition]] = None,
        latex_compiler: str = LATEX_COMPILER,
        dvisvgm: str = DVISVGM,
        timeout: float = TOOL_TIMEOUT,
    ):
        """
        Args:
            macros: Macro table from the preamble, injected into every document
            latex_compiler: DVI-producing LaTeX binary
            dvisvgm: dvisvgm binary
            timeout: Seconds before a tool invocation counts as a tooling failure
        """
        self.macros = dict(macros or {})
        self.latex_compiler = latex_compiler
        self.dvisvgm = dvisvgm
        self.timeout = timeout

        # Custom delimiters to avoid LaTeX brace conflicts
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_PATH)),
            undefined=StrictUndefined,
            variable_start_string="<<<",
            variable_end_string=">>>",
            block_start_string="<%%",
            block_end_string="%%>",
            comment_start_string="<#",
            comment_end_string="#>",
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._template: Template = self.env.get_template(EQUATION_TEMPLATE)
        self._macro_entries = _macro_entries(self.macros)

    def build_document(self, equation: str) -> str:
        """Standalone LaTeX document for one equation."""
        return self._template.render(equation=equation, macros=self._macro_entries)

    def typeset(self, equation: str) -> TypesetResult:
        """
        Typeset an equation to SVG markup.

        Args:
            equation: LaTeX math source (without math delimiters)

        Returns:
            TypesetOk, TypesetFailure for malformed LaTeX, or ToolingFailure
        """
        start = time.perf_counter()
        result = self._typeset(equation)
        log_typeset_result(equation, result, time.perf_counter() - start)
        return result

    def _typeset(self, equation: str) -> TypesetResult:
        with tempfile.TemporaryDirectory(prefix="mdmath-tex-") as tmp:
            workdir = Path(tmp)
            tex_file = workdir / "equation.tex"
            tex_file.write_text(self.build_document(equation), encoding="utf-8")

            cmd = [
                self.latex_compiler,
                "-interaction=nonstopmode",
                "-halt-on-error",
                tex_file.name,
            ]
            _log_debug(f"Running {' '.join(cmd)} in {workdir}")
            try:
                latex = subprocess.run(
                    cmd,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=self.timeout,
                )
            except FileNotFoundError:
                return ToolingFailure(f"LaTeX compiler not found: {self.latex_compiler}")
            except subprocess.TimeoutExpired:
                return ToolingFailure(f"LaTeX compiler timed out after {self.timeout:g}s")

            dvi_file = tex_file.with_suffix(".dvi")
            if latex.returncode != 0 or not dvi_file.exists():
                log_file = tex_file.with_suffix(".log")
                # latex writes log files in latin-1 (font metadata is not UTF-8)
                log_content = (
                    log_file.read_text(encoding="latin-1") if log_file.exists() else latex.stdout
                )
                errors = _parse_latex_errors(log_content)
                if errors:
                    return TypesetFailure(errors[0])
                return ToolingFailure(
                    f"LaTeX compiler exited with status {latex.returncode} without reporting an error"
                )

            cmd = [
                self.dvisvgm,
                "--no-fonts",
                "--exact-bbox",
                "--currentcolor",
                "--verbosity=1",
                "--stdout",
                dvi_file.name,
            ]
            _log_debug(f"Running {' '.join(cmd)}")
            try:
                convert = subprocess.run(
                    cmd,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=self.timeout,
                )
            except FileNotFoundError:
                return ToolingFailure(f"dvisvgm not found: {self.dvisvgm}")
            except subprocess.TimeoutExpired:
                return ToolingFailure(f"dvisvgm timed out after {self.timeout:g}s")

            if convert.returncode != 0 or "<svg" not in convert.stdout:
                detail = convert.stderr.strip().splitlines()
                reason = detail[-1] if detail else f"exit status {convert.returncode}"
                return ToolingFailure(f"dvisvgm failed: {reason}")

            return TypesetOk(convert.stdout)
