"""
Keyword flags and literal search.

Provides:
- Case-insensitive, word-bounded keyword scanning (TODO, FIXME, ...)
- Case-insensitive literal search with overlapping matches
- Match navigation state with wrap-around
"""

from __future__ import annotations

import re
from bisect import bisect_left
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from srcview.core.models import KeywordMatch, PatternDefinition, SearchMatch


NO_SELECTION = -1

SEARCH_MATCH_STYLE = "search.match"
SEARCH_CURRENT_STYLE = "search.current"

DEFAULT_LINT_PATTERNS: Tuple[PatternDefinition, ...] = (
    PatternDefinition("TODO", "lint.todo", "Task to be done"),
    PatternDefinition("FIXME", "lint.fixme", "Bug or issue to fix"),
    PatternDefinition("HACK", "lint.hack", "Workaround or hack"),
    PatternDefinition("NOTE", "lint.note", "Important note"),
    PatternDefinition("XXX", "lint.xxx", "Needs attention"),
    PatternDefinition("DEPRECATED", "lint.deprecated", "Deprecated code"),
)


class _LineIndex:
    """Offset to 0-based line lookups over one buffer."""

    def __init__(self, content: str):
        self._newlines = [match.start() for match in re.finditer("\n", content)]

    def line_of(self, offset: int) -> int:
        return bisect_left(self._newlines, offset)

    def line_start(self, line: int) -> int:
        return self._newlines[line - 1] + 1 if line else 0


@lru_cache(maxsize=16)
def _scan_keywords(content: str, patterns: Tuple[PatternDefinition, ...]) -> Tuple[KeywordMatch, ...]:
    matches: List[KeywordMatch] = []
    lines = _LineIndex(content)

    for pattern in patterns:
        regex = re.compile(rf'\b({re.escape(pattern.keyword)})\b', re.IGNORECASE)
        for match in regex.finditer(content):
            matches.append(KeywordMatch(
                start=match.start(),
                end=match.end(),
                keyword=pattern.keyword,
                style_id=pattern.style_id,
                line=lines.line_of(match.start()),
            ))

    matches.sort(key=lambda m: m.start)
    return tuple(matches)


def find_keywords(content: str, patterns: Iterable[PatternDefinition]) -> Tuple[KeywordMatch, ...]:
    """
    Find every keyword occurrence, sorted by start offset.

    Results are cached per (content, patterns), so toggling which
    keywords are shown filters the same match list instead of
    rescanning.
    """
    return _scan_keywords(content, tuple(patterns))


def count_keywords(content: str, patterns: Sequence[PatternDefinition]) -> Dict[str, int]:
    """Occurrences per keyword, in pattern definition order."""
    counts = {pattern.keyword: 0 for pattern in patterns}
    for match in find_keywords(content, patterns):
        counts[match.keyword] += 1
    return counts


def find_matches(text: str, term: str) -> List[SearchMatch]:
    """
    Find all case-insensitive occurrences of term, overlaps included.

    Each hit advances the scan by one character, so "aa" in "aaa"
    matches at 0 and 1.
    """
    if not term:
        return []

    regex = re.compile(f'(?=({re.escape(term)}))', re.IGNORECASE)
    lines = _LineIndex(text)
    matches = []

    for match in regex.finditer(text):
        start = match.start()
        line = lines.line_of(start)
        matches.append(SearchMatch(
            start=start,
            end=start + len(match.group(1)),
            line=line,
            column=start - lines.line_start(line),
        ))

    return matches


@dataclass(frozen=True)
class SearchState:
    """Matches for the current term plus the selected match."""
    term: str = ""
    matches: Tuple[SearchMatch, ...] = ()
    current_index: int = NO_SELECTION

    @classmethod
    def for_term(cls, text: str, term: str) -> 'SearchState':
        """Search text and select the first match, if any."""
        matches = tuple(find_matches(text, term))
        return cls(term=term, matches=matches, current_index=0 if matches else NO_SELECTION)

    @property
    def count(self) -> int:
        return len(self.matches)

    @property
    def has_matches(self) -> bool:
        return len(self.matches) > 0

    @property
    def current_match(self) -> Optional[SearchMatch]:
        if 0 <= self.current_index < len(self.matches):
            return self.matches[self.current_index]
        return None

    def jump_to(self, index: int) -> 'SearchState':
        """Select a match, wrapping the index in either direction."""
        if not self.matches:
            return self
        return SearchState(self.term, self.matches, index % len(self.matches))

    def next(self) -> 'SearchState':
        return self.jump_to(self.current_index + 1)

    def prev(self) -> 'SearchState':
        return self.jump_to(self.current_index - 1)

    def style_for(self, index: int) -> str:
        return SEARCH_CURRENT_STYLE if index == self.current_index else SEARCH_MATCH_STYLE

    def scroll_target(self, context_lines: int = 3) -> Optional[int]:
        """First line to show so the current match has some context above it."""
        match = self.current_match
        if match is None:
            return None
        return max(0, match.line - context_lines)

    def summary(self) -> str:
        if not self.term:
            return "/ or Enter: search | n/N: next/prev match"
        if not self.matches:
            return f"No matches found for \"{self.term}\""
        match = self.current_match
        plural = "" if self.count == 1 else "es"
        return (
            f"Found {self.count} match{plural} | "
            f"Current: {self.current_index + 1}/{self.count} (line {match.line + 1})"
        )
