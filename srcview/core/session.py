"""
Per-viewer session state.

A ViewerSession owns everything one source view needs: the content and
filetype, its own style registry, the five annotators and the search
state. User input arrives as discrete events (toggle a family, toggle a
flag, set a search term, navigate, jump to a line) and each one replaces
the affected annotator with a new immutable instance.

Sessions share nothing, so any number of viewers can run side by side.

Highlight passes are latest-wins: request_highlight() issues a
generation-numbered ticket, and accept() rejects results whose ticket
is no longer current.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from srcview.core.attribution import AttributionIndex
from srcview.core.colors import parse_rgb, register_color_styles
from srcview.core.models import (
    AnnotatorFamily, AttributionRecord, BlameMode, HighlightContext, Span, StyleDefinition,
)
from srcview.core.overlay import (
    Annotator, BlameHighlighter, BracketColorizer, ColorCodeHighlighter,
    LintHighlighter, OverlayComposer, SearchHighlighter, build_author_styles,
)
from srcview.core.patterns import SearchState
from srcview.core.styles import AUTHOR_TINTS, StyleRegistry, StyleSheets
from srcview.core.tokenizer import tokenize
from srcview.services.hashing import content_version
from srcview.services.settings import AnnotatorSettings


# Render priority, lowest first
FAMILY_ORDER: Tuple[AnnotatorFamily, ...] = (
    AnnotatorFamily.BLAME,
    AnnotatorFamily.BRACKET,
    AnnotatorFamily.COLOR,
    AnnotatorFamily.LINT,
    AnnotatorFamily.SEARCH,
)


@dataclass(frozen=True)
class HighlightTicket:
    """Everything one highlight pass needs, frozen at request time."""
    generation: int
    version: str
    context: HighlightContext
    composer: OverlayComposer
    # None until the buffer has been tokenized for this version
    base: Optional[Tuple[Span, ...]] = None

    def run(self) -> 'HighlightResult':
        """Tokenize if needed and compose the overlays. Safe to call off the UI thread."""
        base = self.base
        if base is None:
            base = tokenize(self.context.content, self.context.filetype)
        return HighlightResult(self, self.composer.compose(base, self.context), base)


@dataclass(frozen=True)
class HighlightResult:
    """Composed spans for a ticket."""
    ticket: HighlightTicket
    spans: Tuple[Span, ...]
    base: Tuple[Span, ...] = ()


class HighlightScheduler:
    """Generation counter deciding which highlight result is current."""

    def __init__(self):
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, ticket: HighlightTicket) -> bool:
        return ticket.generation == self._generation


class ViewerSession:
    """
    Explicit state for one source viewer.

    Usage:
        session = ViewerSession()
        session.set_content(text, "python")
        session.set_attribution(records)
        spans = session.highlight()
    """

    def __init__(
        self,
        style_sheet: Optional[Mapping[str, StyleDefinition]] = None,
        background: str = "#0D1117",
        author_tints: Sequence[str] = AUTHOR_TINTS["GitHub Dark"],
        settings: Optional[AnnotatorSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
        scroll_context_lines: int = 3
    ):
        settings = settings or AnnotatorSettings()

        self.registry = StyleRegistry(style_sheet or StyleSheets.github_dark())
        self.background = parse_rgb(background)
        self.author_tints = tuple(author_tints)
        self.clock = clock
        self.scroll_context_lines = scroll_context_lines
        self.strict_attribution = settings.strict_attribution

        self.content = ""
        self.filetype = ""
        self.version: Optional[str] = None
        self.focused_line: Optional[int] = None
        self.message = ""

        self.scheduler = HighlightScheduler()
        self._base_cache: Optional[Tuple[Tuple[str, str], Tuple[Span, ...]]] = None

        self._annotators: Dict[AnnotatorFamily, Annotator] = {
            AnnotatorFamily.BLAME: BlameHighlighter(
                enabled=settings.blame_enabled,
                now=clock(),
                mode=settings.blame_mode,
                filetypes=frozenset(settings.blame_filetypes),
            ),
            AnnotatorFamily.BRACKET: BracketColorizer(
                enabled=settings.brackets_enabled,
                enabled_types=frozenset(settings.bracket_types),
            ),
            AnnotatorFamily.COLOR: ColorCodeHighlighter(enabled=settings.colors_enabled),
            AnnotatorFamily.LINT: LintHighlighter(
                enabled=settings.lint_enabled,
                enabled_keywords=frozenset(settings.lint_keywords),
                filetypes=frozenset(settings.lint_filetypes),
            ),
            AnnotatorFamily.SEARCH: SearchHighlighter(),
        }

        self.set_content("", "")

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def annotator(self, family: AnnotatorFamily) -> Annotator:
        return self._annotators[family]

    def is_enabled(self, family: AnnotatorFamily) -> bool:
        return self._annotators[family].enabled

    @property
    def bracket(self) -> BracketColorizer:
        return self._annotators[AnnotatorFamily.BRACKET]

    @property
    def blame(self) -> BlameHighlighter:
        return self._annotators[AnnotatorFamily.BLAME]

    @property
    def lint(self) -> LintHighlighter:
        return self._annotators[AnnotatorFamily.LINT]

    @property
    def search(self) -> SearchState:
        return self._annotators[AnnotatorFamily.SEARCH].state

    @property
    def attribution(self) -> AttributionIndex:
        return self.blame.index

    @property
    def context(self) -> HighlightContext:
        return HighlightContext(self.content, self.filetype)

    def composer(self) -> OverlayComposer:
        return OverlayComposer(
            self.registry,
            [self._annotators[family] for family in FAMILY_ORDER],
        )

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def set_content(self, content: str, filetype: Optional[str] = None) -> bool:
        """
        Replace the buffer.

        Color swatch styles are registered for the new version before
        anything can scan it, and the search is rerun so match offsets
        follow the new text. The blame clock is re-read so age buckets
        reflect the time of the reload.

        Returns:
            True if the content version changed
        """
        if filetype is not None:
            self.filetype = filetype
        self.content = content

        version = content_version(content)
        changed = self.registry.begin_version(version)
        if changed:
            register_color_styles(self.registry, content, self.background)
            self.registry.seal()
        self.version = version
        self.refresh_clock()

        term = self.search.term
        if term:
            self._set_search_state(SearchState.for_term(content, term))

        return changed

    def set_filetype(self, filetype: str) -> None:
        self.filetype = filetype

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def toggle_family(self, family: AnnotatorFamily) -> bool:
        """Flip a family on or off. Returns the new state."""
        annotator = self._annotators[family]
        self._annotators[family] = annotator.with_enabled(not annotator.enabled)
        self.message = self._annotators[family].status()
        return not annotator.enabled

    def toggle_bracket_type(self, bracket: str) -> bool:
        self._annotators[AnnotatorFamily.BRACKET] = self.bracket.toggle_type(bracket)
        self.message = self.bracket.status()
        return bracket in self.bracket.enabled_types

    def toggle_lint_keyword(self, keyword: str) -> bool:
        self._annotators[AnnotatorFamily.LINT] = self.lint.toggle_keyword(keyword)
        self.message = self.lint.status()
        return keyword in self.lint.enabled_keywords

    def cycle_blame_mode(self) -> BlameMode:
        self._annotators[AnnotatorFamily.BLAME] = self.blame.cycle_mode()
        self.message = self.blame.status()
        return self.blame.mode

    def set_attribution(self, records: Iterable[AttributionRecord]) -> AttributionIndex:
        """
        Install attribution records and their author styles.

        Overlapping records are dropped, or rejected when the session
        was configured with strict attribution.
        """
        index = AttributionIndex(records, strict=self.strict_attribution)
        author_styles, styles = build_author_styles(
            (record.author for record in index), self.author_tints
        )
        self.registry.register_many(styles, static=True)

        self._annotators[AnnotatorFamily.BLAME] = replace(
            self.blame, index=index, author_styles=author_styles, now=self.clock()
        )
        logging.info(
            f"ViewerSession - {len(index)} attribution record(s) from "
            f"{len(author_styles)} author(s), {len(index.dropped)} dropped"
        )
        return index

    def refresh_clock(self) -> None:
        """Re-read the clock used for age buckets."""
        self._annotators[AnnotatorFamily.BLAME] = replace(self.blame, now=self.clock())

    def set_search_term(self, term: str) -> Optional[int]:
        """
        Search the buffer and select the first match.

        Returns:
            Line to scroll to, or None without matches
        """
        self._set_search_state(SearchState.for_term(self.content, term))
        self.message = self.search.summary()
        return self.search.scroll_target(self.scroll_context_lines)

    def clear_search(self) -> None:
        self._set_search_state(SearchState())
        self.message = self.search.summary()

    def next_match(self) -> Optional[int]:
        return self._navigate(self.search.next())

    def prev_match(self) -> Optional[int]:
        return self._navigate(self.search.prev())

    def jump_to_match(self, index: int) -> Optional[int]:
        return self._navigate(self.search.jump_to(index))

    def jump_to_line(self, line: int) -> str:
        """
        Focus a 0-based line and describe its attribution.

        Raises:
            ValueError: If line is outside the buffer
        """
        line_count = self.content.count("\n") + 1
        if not 0 <= line < line_count:
            raise ValueError(f"Line {line + 1} out of range (1-{line_count})")
        self.focused_line = line
        self.message = self.attribution.describe_line(line, self.blame.now)
        return self.message

    def _navigate(self, state: SearchState) -> Optional[int]:
        self._set_search_state(state)
        self.message = self.search.summary()
        return self.search.scroll_target(self.scroll_context_lines)

    def _set_search_state(self, state: SearchState) -> None:
        search = self._annotators[AnnotatorFamily.SEARCH]
        self._annotators[AnnotatorFamily.SEARCH] = replace(search, state=state)

    # -------------------------------------------------------------------------
    # Highlighting
    # -------------------------------------------------------------------------

    def cached_base_spans(self) -> Optional[Tuple[Span, ...]]:
        """Base spans for the current version and filetype, if already tokenized."""
        if self._base_cache is not None and self._base_cache[0] == (self.version, self.filetype):
            return self._base_cache[1]
        return None

    def base_spans(self) -> Tuple[Span, ...]:
        base = self.cached_base_spans()
        if base is None:
            base = tokenize(self.content, self.filetype)
            self._base_cache = ((self.version, self.filetype), base)
        return base

    def highlight(self, base: Optional[Sequence[Span]] = None) -> Tuple[Span, ...]:
        """Compose all overlays synchronously."""
        if base is None:
            base = self.base_spans()
        return self.composer().compose(base, self.context)

    def request_highlight(self, base: Optional[Sequence[Span]] = None) -> HighlightTicket:
        """
        Start a new pass; any earlier ticket becomes stale.

        Without cached base spans the ticket tokenizes when it runs,
        so the work lands on whichever thread runs it.
        """
        if base is None:
            base = self.cached_base_spans()
        return HighlightTicket(
            generation=self.scheduler.next_generation(),
            version=self.version,
            context=self.context,
            composer=OverlayComposer(
                self.registry.snapshot(),
                [self._annotators[family] for family in FAMILY_ORDER],
            ),
            base=None if base is None else tuple(base),
        )

    def accept(self, result: HighlightResult) -> bool:
        """Check a finished pass is still the latest one."""
        ticket = result.ticket
        key = (ticket.version, ticket.context.filetype)
        # Keep what the pass tokenized if it still describes the buffer
        if ticket.base is None and key == (self.version, self.filetype):
            self._base_cache = (key, result.base)
        if not self.scheduler.is_current(result.ticket):
            logging.warning(
                f"ViewerSession - Discarding stale highlight pass {result.ticket.generation} "
                f"(current {self.scheduler.generation})"
            )
            return False
        return True

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def status_lines(self) -> List[str]:
        """One status line per family, in render order."""
        return [self._annotators[family].status() for family in FAMILY_ORDER]
