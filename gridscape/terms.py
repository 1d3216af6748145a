"""Locate explorable terms inside generated text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class TermSpan:
    """A clickable occurrence of a term in a text.

    ``text`` is the matched slice as it appears in the source, which can
    differ in case from ``term``.
    """

    start: int
    end: int
    term: str
    text: str


def build_term_pattern(terms: Iterable[str]) -> re.Pattern[str] | None:
    """Compile a case-insensitive alternation, longest terms first."""
    unique = {t for t in terms if t and t.strip()}
    if not unique:
        return None
    ordered = sorted(unique, key=lambda t: (-len(t), t))
    return re.compile("|".join(re.escape(t) for t in ordered), re.IGNORECASE)


def find_term_spans(text: str, terms: Iterable[str]) -> list[TermSpan]:
    """Find non-overlapping term occurrences, scanning left to right.

    Terms that do not occur in the text are simply never matched.
    """
    terms = list(terms)
    pattern = build_term_pattern(terms)
    if not text or pattern is None:
        return []

    by_lower = {t.lower(): t for t in sorted(terms, key=len, reverse=True)}
    return [
        TermSpan(
            start=m.start(),
            end=m.end(),
            term=by_lower.get(m.group(0).lower(), m.group(0)),
            text=m.group(0),
        )
        for m in pattern.finditer(text)
    ]


def split_by_terms(text: str, terms: Iterable[str]) -> list[tuple[str, TermSpan | None]]:
    """Split text into plain and term segments, preserving every character."""
    segments: list[tuple[str, TermSpan | None]] = []
    cursor = 0
    for span in find_term_spans(text, terms):
        if span.start > cursor:
            segments.append((text[cursor:span.start], None))
        segments.append((span.text, span))
        cursor = span.end
    if cursor < len(text):
        segments.append((text[cursor:], None))
    return segments
