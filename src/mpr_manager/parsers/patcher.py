"""
In-place PKGBUILD variable patching.

Rewrites the value of one assignment in raw PKGBUILD text and leaves every
other byte alone, so comments, formatting and functions survive an edit.
"""

from dataclasses import dataclass

from mpr_manager.core.errors import VariableNotFoundError


@dataclass(frozen=True)
class AssignmentSpan:
    """Character range `[value_start, value_end)` of one assignment's value."""

    value_start: int
    value_end: int


def _find_closing_quote(text: str, delimiter: str, opening: int) -> int:
    """Return the index just past the first unescaped `delimiter` after `opening`."""
    # NOTE: a backslash before the delimiter always escapes it, so `"foo\\"`
    # (an escaped backslash followed by a real quote) is not terminated here.
    pos = opening
    while True:
        pos = text.find(delimiter, pos + 1)
        if pos == -1:
            return len(text)
        if text[pos - 1] != "\\":
            return pos + 1


def _find_value_end(text: str, value_start: int) -> int:
    if value_start >= len(text):
        return value_start

    first = text[value_start]
    if first in ("'", '"'):
        return _find_closing_quote(text, first, value_start)
    if first == "(":
        close = text.find(")", value_start + 1)
        return len(text) if close == -1 else close + 1

    for pos in range(value_start, len(text)):
        if text[pos].isspace():
            return pos
    return len(text)


def find_assignment(text: str, name: str) -> AssignmentSpan:
    """
    Locate the value of the first `name=` assignment in `text`.

    Raises:
        VariableNotFoundError: `name=` does not occur in the text.
    """
    prefix = f"{name}="
    prefix_start = text.find(prefix)
    if prefix_start == -1:
        raise VariableNotFoundError(name)

    value_start = prefix_start + len(prefix)
    return AssignmentSpan(value_start, _find_value_end(text, value_start))


def get_variable_literal(text: str, name: str) -> str:
    """Return the assignment's value exactly as written, quotes included."""
    span = find_assignment(text, name)
    return text[span.value_start : span.value_end]


def patch_variable(text: str, name: str, new_value: str) -> str:
    """
    Replace the value of the first `name=` assignment with `new_value`.

    `new_value` is inserted verbatim, so the caller supplies any quotes or
    parentheses the assignment should keep.

    Args:
        text: Raw PKGBUILD text.
        name: Variable to patch.
        new_value: Replacement literal.

    Returns:
        The full patched text. `text` itself is never modified.
    """
    span = find_assignment(text, name)
    return text[: span.value_start] + new_value + text[span.value_end :]
