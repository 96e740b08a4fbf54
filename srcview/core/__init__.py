"""
Annotation core.

Independent scanners turn text into style-tagged spans; annotators wrap
them and an OverlayComposer chains the annotators over a base highlight.
"""

from srcview.core.models import (
    AgeBucket,
    AnnotatorFamily,
    AttributionRecord,
    BlameMode,
    BracketMatch,
    ColorMatch,
    HighlightContext,
    KeywordMatch,
    PatternDefinition,
    RGB,
    RGBA,
    SearchMatch,
    Span,
    StyleDefinition,
)
from srcview.core.lexical import LexicalScanner, count_brackets, find_bracket_pairs
from srcview.core.colors import blend, contrast_color, decode_color, extract_colors
from srcview.core.attribution import AttributionIndex, OverlappingAttributionError, classify
from srcview.core.patterns import SearchState, find_keywords, find_matches
from srcview.core.styles import (
    SealedRegistryError,
    StyleConflictError,
    StyleRegistry,
    StyleRegistryError,
    StyleSheets,
    UnknownStyleError,
)
from srcview.core.overlay import (
    Annotator,
    BlameHighlighter,
    BracketColorizer,
    ColorCodeHighlighter,
    LintHighlighter,
    OverlayComposer,
    SearchHighlighter,
)

__all__ = [
    # Models
    'AgeBucket',
    'AnnotatorFamily',
    'AttributionRecord',
    'BlameMode',
    'BracketMatch',
    'ColorMatch',
    'HighlightContext',
    'KeywordMatch',
    'PatternDefinition',
    'RGB',
    'RGBA',
    'SearchMatch',
    'Span',
    'StyleDefinition',
    # Scanners
    'LexicalScanner',
    'count_brackets',
    'find_bracket_pairs',
    'blend',
    'contrast_color',
    'decode_color',
    'extract_colors',
    'AttributionIndex',
    'OverlappingAttributionError',
    'classify',
    'SearchState',
    'find_keywords',
    'find_matches',
    # Styles
    'SealedRegistryError',
    'StyleConflictError',
    'StyleRegistry',
    'StyleRegistryError',
    'StyleSheets',
    'UnknownStyleError',
    # Overlays
    'Annotator',
    'BlameHighlighter',
    'BracketColorizer',
    'ColorCodeHighlighter',
    'LintHighlighter',
    'OverlayComposer',
    'SearchHighlighter',
]
