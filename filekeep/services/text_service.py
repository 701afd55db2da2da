"""Text service: distinct characters of a text stream."""

from __future__ import annotations

import unicodedata
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

LINE_TERMINATORS = frozenset("\n\r")


def distinct_characters(chunks: Iterable[str]) -> Counter[str]:
    """Count every character in ``chunks`` except line terminators."""
    counts: Counter[str] = Counter()
    for chunk in chunks:
        counts.update(chunk)
    for terminator in LINE_TERMINATORS:
        counts.pop(terminator, None)
    return counts


def describe_character(char: str) -> str:
    """Return ``U+XXXX NAME`` for a character; unnamed ones get only the code point."""
    name = unicodedata.name(char, "")
    codepoint = f"U+{ord(char):04X}"
    return f"{codepoint} {name}" if name else codepoint


def printable_form(char: str) -> str:
    """Return a visible stand-in for whitespace and control characters."""
    if char == "\t":
        return "\\t"
    if char == " ":
        return "' '"
    if unicodedata.category(char) in {"Cc", "Cf", "Zl", "Zp"}:
        return f"\\u{ord(char):04x}"
    return char
