"""
Core data models for the source annotation overlays.

This module defines the data structures shared by the scanners,
the annotators and the renderer adapter:
- Spans and the highlight context handed to annotators
- Bracket, color, keyword and search matches
- Attribution (blame) records and age buckets
- Style definitions

All models are designed to be:
- UI-agnostic (the Qt adapter lives in srcview.ui)
- Immutable, so span lists can be shared between composition passes
- Type-hinted for IDE support
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Mapping, Optional


# =============================================================================
# Enumerations
# =============================================================================

class AnnotatorFamily(Enum):
    """Annotator families, each owning one style namespace."""
    BRACKET = "bracket"
    COLOR = "color"
    BLAME = "blame"
    LINT = "lint"
    SEARCH = "search"

    @property
    def prefix(self) -> str:
        return f"{self.value}."

    @classmethod
    def from_string(cls, value: str) -> 'AnnotatorFamily':
        """Create from a family name such as 'lint' or 'LINT'."""
        for family in cls:
            if family.value == value.lower():
                return family
        return cls[value.upper()]


class AgeBucket(Enum):
    """Age of a line's last change, oldest first."""
    ANCIENT = auto()   # 540 days and older
    OLD = auto()       # 365 days and older
    MEDIUM = auto()    # 180 days and older
    RECENT = auto()    # 30 days and older
    FRESH = auto()     # 7 days and older
    NEW = auto()       # younger than a week

    @property
    def label(self) -> str:
        return self.name.lower()


class BlameMode(Enum):
    """What the blame annotator paints for each attributed line."""
    AGE = auto()
    AUTHOR = auto()
    BOTH = auto()
    OFF = auto()

    def next(self) -> 'BlameMode':
        """Next mode in the cycle age -> author -> both -> off."""
        modes = list(BlameMode)
        return modes[(modes.index(self) + 1) % len(modes)]


# =============================================================================
# Spans
# =============================================================================

@dataclass(frozen=True)
class Span:
    """
    A style-tagged, half-open offset range over one text buffer.

    Offsets are only meaningful for the content version they were
    computed against.
    """
    start: int
    end: int
    style_id: str
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(
                f"Invalid span [{self.start}, {self.end}) for style {self.style_id!r}"
            )
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, 'metadata', MappingProxyType(dict(self.metadata)))

    @property
    def length(self) -> int:
        return self.end - self.start

    def fits(self, content_length: int) -> bool:
        """Check the span lies inside a buffer of the given length."""
        return self.end <= content_length


@dataclass(frozen=True)
class HighlightContext:
    """Read-only context handed to every annotator."""
    content: str
    filetype: str = ""


# =============================================================================
# Scanner results
# =============================================================================

@dataclass(frozen=True)
class BracketMatch:
    """A matched bracket pair. Depth counts per bracket type."""
    open_pos: int
    close_pos: int
    bracket_char: str
    depth: int


@dataclass(frozen=True)
class LexicalRegion:
    """A string or comment region skipped by the lexical scanner."""
    start: int
    end: int
    kind: str    # 'string', 'line_comment' or 'block_comment'


@dataclass(frozen=True)
class RGB:
    """An opaque color, channels in [0, 255]."""
    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


@dataclass(frozen=True)
class RGBA:
    """A color with alpha in [0, 1]."""
    r: int
    g: int
    b: int
    a: float = 1.0

    @property
    def rgb(self) -> RGB:
        return RGB(self.r, self.g, self.b)

    @property
    def is_opaque(self) -> bool:
        return self.a >= 1.0


@dataclass(frozen=True)
class ColorMatch:
    """A color literal found in text."""
    start: int
    end: int
    raw_literal: str

    @property
    def normalized(self) -> str:
        """Literal without '#', lower-cased. Used to key styles."""
        return self.raw_literal.lstrip('#').lower()


@dataclass(frozen=True)
class PatternDefinition:
    """A keyword to flag and the style its matches get."""
    keyword: str
    style_id: str
    description: str = ""


@dataclass(frozen=True)
class KeywordMatch:
    """A keyword occurrence."""
    start: int
    end: int
    keyword: str
    style_id: str
    line: int


@dataclass(frozen=True)
class SearchMatch:
    """A literal search hit. Line and column are 0-based."""
    start: int
    end: int
    line: int
    column: int

    @property
    def length(self) -> int:
        return self.end - self.start


# =============================================================================
# Attribution
# =============================================================================

@dataclass(frozen=True)
class AttributionRecord:
    """
    Authorship of a half-open line range.

    Line numbers are 0-based; line_end is exclusive.
    """
    line_start: int
    line_end: int
    author: str
    timestamp: datetime
    identifier: str = ""
    message: str = ""

    @property
    def line_count(self) -> int:
        return self.line_end - self.line_start

    def contains(self, line: int) -> bool:
        return self.line_start <= line < self.line_end

    def overlaps(self, other: 'AttributionRecord') -> bool:
        return self.line_start < other.line_end and other.line_start < self.line_end


# =============================================================================
# Styles
# =============================================================================

@dataclass(frozen=True)
class StyleDefinition:
    """Visual attributes of a style id. Colors are '#rrggbb' strings."""
    foreground: Optional[str] = None
    background: Optional[str] = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
