"""
Overlay annotators and the composer that chains them.

Every annotator takes the current span list and a read-only
HighlightContext and returns a new tuple: the input spans unchanged,
followed by the spans it adds. Append order is render priority, so a
later span wins where ranges coincide. A disabled annotator returns its
input as is.

Annotators are frozen: toggling a family or a flag means building a new
annotator (see ViewerSession), never mutating one in place.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Sequence, Tuple

from srcview.core.attribution import AttributionIndex, classify, line_offsets
from srcview.core.colors import color_style_id, extract_colors
from srcview.core.lexical import BRACKET_PAIRS, depth_style, find_bracket_pairs
from srcview.core.models import (
    AnnotatorFamily, BlameMode, HighlightContext, PatternDefinition, Span, StyleDefinition,
)
from srcview.core.patterns import DEFAULT_LINT_PATTERNS, SearchState, find_keywords
from srcview.core.styles import StyleRegistry, UnknownStyleError, age_style_id


ALL_BRACKET_TYPES: FrozenSet[str] = frozenset(BRACKET_PAIRS)

# Filetypes that have blame data worth showing
BLAME_FILETYPES: FrozenSet[str] = frozenset({
    "typescript", "javascript", "tsx", "jsx", "python",
    "rust", "go", "c", "cpp", "java",
})

# Filetypes whose comments carry lint keywords
LINT_FILETYPES: FrozenSet[str] = frozenset({
    "typescript", "javascript", "tsx", "jsx", "python", "rust", "go",
    "c", "cpp", "java", "ruby", "php", "swift", "kotlin", "scala", "lua",
    "bash", "sh", "css", "scss", "html",
})

UNKNOWN_AUTHOR_STYLE = "blame.author.unknown"


@dataclass(frozen=True)
class Annotator(ABC):
    """Base class for overlay annotators."""
    enabled: bool = True

    family: AnnotatorFamily = field(init=False, repr=False, default=AnnotatorFamily.BRACKET)

    def compose(self, base: Sequence[Span], context: HighlightContext) -> Tuple[Span, ...]:
        """Return base followed by this annotator's spans."""
        base = tuple(base)
        if not self.enabled:
            return base
        return base + tuple(self.annotate(context))

    @abstractmethod
    def annotate(self, context: HighlightContext) -> Iterable[Span]:
        """Spans this annotator adds for the given content."""
        pass

    def with_enabled(self, enabled: bool) -> 'Annotator':
        return replace(self, enabled=enabled)

    def status(self) -> str:
        return f"{self.family.value}: {'ON' if self.enabled else 'OFF'}"


@dataclass(frozen=True)
class BracketColorizer(Annotator):
    """Colors bracket pairs by their per-type nesting depth."""
    enabled_types: FrozenSet[str] = ALL_BRACKET_TYPES

    family: AnnotatorFamily = field(init=False, repr=False, default=AnnotatorFamily.BRACKET)

    def annotate(self, context: HighlightContext) -> Iterator[Span]:
        if not self.enabled_types:
            return
        for pair in find_bracket_pairs(context.content):
            if pair.bracket_char not in self.enabled_types:
                continue
            style = depth_style(pair.depth)
            metadata = {"depth": pair.depth}
            yield Span(pair.open_pos, pair.open_pos + 1, style, metadata)
            yield Span(pair.close_pos, pair.close_pos + 1, style, metadata)

    def toggle_type(self, bracket: str) -> 'BracketColorizer':
        if bracket not in ALL_BRACKET_TYPES:
            raise ValueError(f"Not a bracket type: {bracket!r}")
        return replace(self, enabled_types=self.enabled_types ^ {bracket})

    def status(self) -> str:
        enabled = " ".join(
            f"{open_}{close}" for open_, close in BRACKET_PAIRS.items()
            if open_ in self.enabled_types
        ) or "none"
        return f"Bracket colorizer: {'ON' if self.enabled else 'OFF'} | Enabled: {enabled}"


@dataclass(frozen=True)
class ColorCodeHighlighter(Annotator):
    """
    Paints hex color literals with their own color.

    Swatch styles must already be registered for the content version
    (srcview.core.colors.register_color_styles).
    """
    family: AnnotatorFamily = field(init=False, repr=False, default=AnnotatorFamily.COLOR)

    def annotate(self, context: HighlightContext) -> Iterator[Span]:
        for match in extract_colors(context.content):
            yield Span(match.start, match.end, color_style_id(match))

    def status(self) -> str:
        return f"Color highlighting: {'ON' if self.enabled else 'OFF'}"


@dataclass(frozen=True)
class BlameHighlighter(Annotator):
    """
    Tints each attributed line by commit age and/or author.

    Only runs for filetypes in the allow-list; blame data is assumed
    unavailable for anything else.
    """
    index: AttributionIndex = field(default_factory=AttributionIndex, compare=False)
    now: datetime = field(default_factory=datetime.now)
    mode: BlameMode = BlameMode.AGE
    author_styles: Mapping[str, str] = field(default_factory=dict)
    filetypes: FrozenSet[str] = BLAME_FILETYPES

    family: AnnotatorFamily = field(init=False, repr=False, default=AnnotatorFamily.BLAME)

    def annotate(self, context: HighlightContext) -> Iterator[Span]:
        if self.mode is BlameMode.OFF or context.filetype not in self.filetypes:
            return

        show_age = self.mode in (BlameMode.AGE, BlameMode.BOTH)
        show_author = self.mode in (BlameMode.AUTHOR, BlameMode.BOTH)

        for line, (start, end) in enumerate(line_offsets(context.content)):
            if start >= end:
                continue
            record = self.index.lookup(line)
            if record is None:
                continue
            metadata = {"line": line, "identifier": record.identifier}
            if show_age:
                bucket = classify(record.timestamp, self.now)
                yield Span(start, end, age_style_id(bucket), metadata)
            if show_author:
                style = self.author_styles.get(record.author, UNKNOWN_AUTHOR_STYLE)
                yield Span(start, end, style, metadata)

    def cycle_mode(self) -> 'BlameHighlighter':
        return replace(self, mode=self.mode.next())

    def status(self) -> str:
        descriptions = {
            BlameMode.AGE: "Age (older = more faded)",
            BlameMode.AUTHOR: "Author colors",
            BlameMode.BOTH: "Age + Author",
            BlameMode.OFF: "Off",
        }
        mode = descriptions[self.mode] if self.enabled else "Off"
        return f"Blame mode: {mode}"


@dataclass(frozen=True)
class LintHighlighter(Annotator):
    """Flags TODO/FIXME style keywords in supported filetypes."""
    patterns: Tuple[PatternDefinition, ...] = DEFAULT_LINT_PATTERNS
    enabled_keywords: FrozenSet[str] = frozenset(p.keyword for p in DEFAULT_LINT_PATTERNS)
    filetypes: FrozenSet[str] = LINT_FILETYPES

    family: AnnotatorFamily = field(init=False, repr=False, default=AnnotatorFamily.LINT)

    def annotate(self, context: HighlightContext) -> Iterator[Span]:
        if context.filetype not in self.filetypes or not self.enabled_keywords:
            return
        for match in find_keywords(context.content, self.patterns):
            if match.keyword in self.enabled_keywords:
                yield Span(match.start, match.end, match.style_id, {"line": match.line})

    def toggle_keyword(self, keyword: str) -> 'LintHighlighter':
        known = {pattern.keyword for pattern in self.patterns}
        if keyword not in known:
            raise ValueError(f"Unknown lint keyword: {keyword!r}")
        return replace(self, enabled_keywords=self.enabled_keywords ^ {keyword})

    def status(self) -> str:
        enabled = ", ".join(
            p.keyword for p in self.patterns if p.keyword in self.enabled_keywords
        ) or "none"
        return f"Lint highlighting: {'ON' if self.enabled else 'OFF'} | Enabled: {enabled}"


@dataclass(frozen=True)
class SearchHighlighter(Annotator):
    """Marks search matches, the selected one with its own style."""
    state: SearchState = SearchState()

    family: AnnotatorFamily = field(init=False, repr=False, default=AnnotatorFamily.SEARCH)

    def annotate(self, context: HighlightContext) -> Iterator[Span]:
        for index, match in enumerate(self.state.matches):
            yield Span(match.start, match.end, self.state.style_for(index), {"index": index})

    def status(self) -> str:
        return self.state.summary()


def author_style_id(author: str) -> str:
    slug = re.sub(r'\W+', '_', author.strip().lower()).strip('_') or "anonymous"
    return f"blame.author.{slug}"


def build_author_styles(
    authors: Iterable[str],
    tints: Sequence[str]
) -> Tuple[Dict[str, str], Dict[str, StyleDefinition]]:
    """
    Assign background tints to authors in order of first appearance.

    Returns:
        (author -> style id, style id -> definition)
    """
    mapping: Dict[str, str] = {}
    styles: Dict[str, StyleDefinition] = {}

    for author in authors:
        if author in mapping:
            continue
        style_id = author_style_id(author)
        if style_id not in styles:
            styles[style_id] = StyleDefinition(background=tints[len(styles) % len(tints)])
        mapping[author] = style_id

    return mapping, styles


class OverlayComposer:
    """
    Runs annotators in sequence over a base highlight list.

    Each annotator's output is the next one's input. Spans an annotator
    adds must reference registered styles and fit the content; a
    violation is a configuration error and raises.
    """

    def __init__(self, registry: StyleRegistry, annotators: Sequence[Annotator] = ()):
        self.registry = registry
        self.annotators: Tuple[Annotator, ...] = tuple(annotators)

    def compose(self, base: Sequence[Span], context: HighlightContext) -> Tuple[Span, ...]:
        """
        Compose all annotators over base.

        Raises:
            UnknownStyleError: If an added span uses an unregistered style
            ValueError: If an added span lies outside the content
        """
        spans = tuple(base)
        content_length = len(context.content)

        for annotator in self.annotators:
            composed = annotator.compose(spans, context)
            if len(composed) < len(spans):
                raise ValueError(f"{type(annotator).__name__} removed spans from its input")
            self._validate(composed[len(spans):], content_length, annotator)
            spans = composed

        logging.debug(
            f"OverlayComposer - {len(spans) - len(base)} overlay span(s) "
            f"over {len(base)} base span(s)"
        )
        return spans

    def _validate(self, added: Sequence[Span], content_length: int, annotator: Annotator) -> None:
        for span in added:
            if span.style_id not in self.registry:
                logging.error(
                    f"OverlayComposer - {type(annotator).__name__} used unregistered style {span.style_id!r}"
                )
                raise UnknownStyleError(span.style_id)
            if not span.fits(content_length):
                raise ValueError(
                    f"{type(annotator).__name__} produced span [{span.start}, {span.end}) "
                    f"beyond content length {content_length}"
                )
