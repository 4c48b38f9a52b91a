"""Tagged outcomes of a typesetter call."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TypesetOk:
    """Equation typeset successfully."""

    svg: str


@dataclass(frozen=True)
class TypesetFailure:
    """Malformed LaTeX. Deterministic for a given equation, so it may be cached."""

    message: str


@dataclass(frozen=True)
class ToolingFailure:
    """The typesetter itself failed (missing binary, crash, timeout). Never cached."""

    message: str


TypesetResult = Union[TypesetOk, TypesetFailure, ToolingFailure]
