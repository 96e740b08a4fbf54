"""
Heuristic lexical scanner for bracket pair matching.

Provides:
- Per-bracket-type nesting with independent depth counters
- String and comment awareness (//, /* */, ", ', `)
- The skipped string/comment regions for other consumers
- Bracket statistics

This is not a parser: cross-type ordering is not enforced, so
"([)]" yields one () pair and one [] pair.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from srcview.core.models import BracketMatch, LexicalRegion


BRACKET_PAIRS: Dict[str, str] = {
    "(": ")",
    "[": "]",
    "{": "}",
    "<": ">",
}

CLOSER_TO_OPENER: Dict[str, str] = {close: open_ for open_, close in BRACKET_PAIRS.items()}

QUOTE_CHARS = frozenset('"\'`')

# Rotating styles for bracket depth, one per depth modulo the palette size
BRACKET_DEPTH_STYLES: Tuple[str, ...] = tuple(f"bracket.depth{i}" for i in range(6))


def depth_style(depth: int) -> str:
    """Style id for a bracket at the given per-type depth."""
    return BRACKET_DEPTH_STYLES[depth % len(BRACKET_DEPTH_STYLES)]


@dataclass(frozen=True)
class LexicalScan:
    """Result of one scanner pass."""
    brackets: Tuple[BracketMatch, ...] = ()
    regions: Tuple[LexicalRegion, ...] = ()
    _region_starts: Tuple[int, ...] = field(default=(), repr=False, compare=False)

    def region_at(self, offset: int) -> Optional[LexicalRegion]:
        """The string/comment region containing offset, if any."""
        index = bisect.bisect_right(self._region_starts, offset) - 1
        if index >= 0:
            region = self.regions[index]
            if region.start <= offset < region.end:
                return region
        return None

    def is_code(self, offset: int) -> bool:
        """True when offset is outside every string and comment."""
        return self.region_at(offset) is None


@dataclass(frozen=True)
class BracketStats:
    """Bracket pair counts for a buffer."""
    total: int
    by_type: Dict[str, int]
    max_depth: int


class LexicalScanner:
    """
    Single-pass scanner tracking line comments, block comments and strings.

    Brackets inside any of those three modes are ignored. An unescaped
    quote toggles string mode; while a string is open, the other quote
    characters are plain text.
    """

    def scan(self, content: str) -> LexicalScan:
        """
        Scan content left to right.

        Args:
            content: Text to scan

        Returns:
            LexicalScan with bracket matches in closing order and the
            skipped regions in start order
        """
        matches: List[BracketMatch] = []
        regions: List[LexicalRegion] = []
        stacks: Dict[str, List[Tuple[int, int]]] = {open_: [] for open_ in BRACKET_PAIRS}
        depths: Dict[str, int] = {open_: 0 for open_ in BRACKET_PAIRS}

        in_string: Optional[str] = None
        in_line_comment = False
        in_block_comment = False
        region_start = 0
        dropped = 0

        length = len(content)
        i = 0
        while i < length:
            char = content[i]
            next_char = content[i + 1] if i + 1 < length else ""

            if char == "\n":
                if in_line_comment:
                    regions.append(LexicalRegion(region_start, i, 'line_comment'))
                    in_line_comment = False
                i += 1
                continue

            if in_line_comment:
                i += 1
                continue

            if in_block_comment:
                if char == "*" and next_char == "/":
                    # Consume the closing '/' too
                    regions.append(LexicalRegion(region_start, i + 2, 'block_comment'))
                    in_block_comment = False
                    i += 2
                else:
                    i += 1
                continue

            if in_string is None and char == "/" and next_char == "*":
                in_block_comment = True
                region_start = i
                i += 2
                continue

            if in_string is None and char == "/" and next_char == "/":
                in_line_comment = True
                region_start = i
                i += 2
                continue

            if in_string is None and char in QUOTE_CHARS:
                in_string = char
                region_start = i
                i += 1
                continue

            if in_string is not None:
                if char == in_string and content[i - 1] != "\\":
                    regions.append(LexicalRegion(region_start, i + 1, 'string'))
                    in_string = None
                i += 1
                continue

            if char in BRACKET_PAIRS:
                stacks[char].append((i, depths[char]))
                depths[char] += 1
            elif char in CLOSER_TO_OPENER:
                opener = CLOSER_TO_OPENER[char]
                stack = stacks[opener]
                if stack:
                    open_pos, depth = stack.pop()
                    depths[opener] -= 1
                    matches.append(BracketMatch(open_pos, i, opener, depth))
                else:
                    dropped += 1
            i += 1

        # Unterminated constructs run to the end of the buffer
        if in_line_comment:
            regions.append(LexicalRegion(region_start, length, 'line_comment'))
        elif in_block_comment:
            regions.append(LexicalRegion(region_start, length, 'block_comment'))
        elif in_string is not None:
            regions.append(LexicalRegion(region_start, length, 'string'))

        unmatched = sum(len(stack) for stack in stacks.values())
        if dropped or unmatched:
            logging.debug(
                f"LexicalScanner - {dropped} unmatched closer(s), "
                f"{unmatched} unmatched opener(s) ignored"
            )

        return LexicalScan(
            brackets=tuple(matches),
            regions=tuple(regions),
            _region_starts=tuple(region.start for region in regions),
        )


_scanner = LexicalScanner()


def find_bracket_pairs(content: str) -> Tuple[BracketMatch, ...]:
    """Find all matched bracket pairs in content."""
    return _scanner.scan(content).brackets


def count_brackets(content: str) -> BracketStats:
    """Count bracket pairs per type and the deepest nesting seen."""
    by_type: Dict[str, int] = {}
    max_depth = 0

    pairs = find_bracket_pairs(content)
    for pair in pairs:
        by_type[pair.bracket_char] = by_type.get(pair.bracket_char, 0) + 1
        max_depth = max(max_depth, pair.depth + 1)

    return BracketStats(total=len(pairs), by_type=by_type, max_depth=max_depth)
