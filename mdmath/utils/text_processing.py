"""Text scanning helpers shared by the LaTeX-facing modules."""

import hashlib
from typing import Tuple


def extract_balanced_delimiters(
    text: str,
    start_pos: int,
    open_char: str = "{",
    close_char: str = "}",
    escape_char: str = "\\",
) -> Tuple[str, int]:
    """
    Extract content between balanced delimiters, handling escaped characters.

    Assumes start_pos is just AFTER an opening delimiter. Counts nested delimiters
    to find the matching closing delimiter, skipping escaped characters such as
    ``\\{``.

    Args:
        text: Text containing delimited content
        start_pos: Position right after the opening delimiter
        open_char: Opening delimiter character (default: '{')
        close_char: Closing delimiter character (default: '}')
        escape_char: Character used for escaping (default: '\\')

    Returns:
        (content, end_pos) where content excludes the delimiters and end_pos is
        the position after the closing delimiter

    Raises:
        ValueError: If delimiters are unmatched

    Example:
        >>> extract_balanced_delimiters(r"\\newcommand{\\R}{\\mathbb{R}} rest", 12)
        ('\\\\R', 15)
    """
    depth = 1
    pos = start_pos

    while pos < len(text) and depth > 0:
        char = text[pos]
        if char == escape_char:
            pos += 2
            continue
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
        pos += 1

    if depth != 0:
        raise ValueError(
            f"Unmatched {open_char}{close_char} delimiters starting at position {start_pos}"
        )

    return text[start_pos : pos - 1], pos


def short_digest(text: str, length: int = 7) -> str:
    """Hex sha256 digest of text, truncated to length characters."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]
