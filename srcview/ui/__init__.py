"""
Qt user interface: renderer adapter and source viewer window.
"""

from srcview.ui.source_view import OverlaySyntaxHighlighter, SourceViewWindow

__all__ = [
    'OverlaySyntaxHighlighter',
    'SourceViewWindow',
]
