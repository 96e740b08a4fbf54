"""
Qt renderer adapter and source viewer window.

Provides:
- OverlaySyntaxHighlighter: paints composed spans onto a QTextDocument,
  merging each style over the format already on the character
- SourceViewWindow: a read-only source view binding keys to session events
"""

from __future__ import annotations

import bisect
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import Qt, pyqtSlot
from PyQt6.QtGui import (
    QAction, QColor, QFont, QKeySequence, QPalette,
    QSyntaxHighlighter, QTextCharFormat, QTextDocument,
)
from PyQt6.QtWidgets import (
    QInputDialog, QLabel, QLineEdit, QMainWindow, QMessageBox,
    QPlainTextEdit, QVBoxLayout, QWidget,
)

from srcview.core.lexical import BRACKET_PAIRS
from srcview.core.models import AnnotatorFamily, Span
from srcview.core.session import HighlightResult, ViewerSession
from srcview.core.styles import StyleRegistry
from srcview.services.blame_source import BlameResult
from srcview.services.file_io import FileIOService
from srcview.services.settings import UISettings
from srcview.workers.highlight_worker import HighlightController


def utf16_offsets(text: str) -> Optional[List[int]]:
    """
    Map code point offsets in text to QString (UTF-16) offsets.

    Returns None when the two coincide (no characters outside the BMP).
    """
    if all(ord(char) <= 0xFFFF for char in text):
        return None
    offsets = [0]
    for char in text:
        offsets.append(offsets[-1] + (2 if ord(char) > 0xFFFF else 1))
    return offsets


class OverlaySyntaxHighlighter(QSyntaxHighlighter):
    """
    Paints a composed span list.

    Spans are applied in list order, each merged over whatever format the
    character already carries, so later spans win on the attributes they
    set and leave the others alone.
    """

    def __init__(self, document: QTextDocument, registry: StyleRegistry):
        super().__init__(document)
        self._registry = registry
        self._line_starts: List[int] = [0]
        self._by_block: Dict[int, List[Tuple[int, int, QTextCharFormat]]] = {}

    def set_spans(self, spans: Sequence[Span], content: str) -> None:
        """Replace the painted spans. content must match the document text."""
        self._line_starts = [0]
        for index, char in enumerate(content):
            if char == "\n":
                self._line_starts.append(index + 1)

        by_block: Dict[int, List[Tuple[int, int, QTextCharFormat]]] = {}
        for span in spans:
            fmt = self._registry.char_format(span.style_id)
            first = bisect.bisect_right(self._line_starts, span.start) - 1
            last = bisect.bisect_right(self._line_starts, span.end - 1) - 1
            for block in range(first, last + 1):
                line_start = self._line_starts[block]
                start = max(span.start, line_start) - line_start
                end = span.end - line_start
                by_block.setdefault(block, []).append((start, end, fmt))

        self._by_block = by_block
        self.rehighlight()

    def clear_spans(self) -> None:
        self._by_block = {}
        self.rehighlight()

    def highlightBlock(self, text: str) -> None:
        """Paint the spans that touch this block."""
        entries = self._by_block.get(self.currentBlock().blockNumber())
        if not entries:
            return

        offsets = utf16_offsets(text)
        length = len(text)

        for start, end, fmt in entries:
            end = min(end, length)
            for position in range(start, end):
                qt_position = offsets[position] if offsets else position
                qt_length = (offsets[position + 1] - qt_position) if offsets else 1
                merged = QTextCharFormat(self.format(qt_position))
                merged.merge(fmt)
                self.setFormat(qt_position, qt_length, merged)


class SourceViewWindow(QMainWindow):
    """
    Read-only source viewer with overlay controls.

    Keys:
        B: brackets on/off      1-4: toggle ( [ { <
        C: colors on/off        M: cycle blame mode
        L: lint on/off          Ctrl+1-6: toggle lint keywords
        / or Ctrl+F: search     n / Shift+N: next / previous match
        Ctrl+G: go to line      Esc: close search
    """

    def __init__(
        self,
        session: ViewerSession,
        ui_settings: Optional[UISettings] = None,
        parent: Optional[QWidget] = None
    ):
        super().__init__(parent)

        self.session = session
        self.ui_settings = ui_settings or UISettings()
        self.file_service = FileIOService()
        self.controller = HighlightController(session, parent=self)
        self.controller.highlighted.connect(self._on_highlighted)
        self.controller.failed.connect(self._on_highlight_failed)

        self._setup_ui()
        self._setup_actions()
        self._update_status()

    def _setup_ui(self) -> None:
        """Set up the main UI layout."""
        self.setWindowTitle("srcview")
        self.resize(self.ui_settings.window_width, self.ui_settings.window_height)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self._editor = QPlainTextEdit()
        self._editor.setReadOnly(True)
        self._editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        font = QFont(self.ui_settings.font_family, self.ui_settings.font_size)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self._editor.setFont(font)

        palette = self._editor.palette()
        palette.setColor(QPalette.ColorRole.Base, QColor(self.ui_settings.background))
        default_style = self.session.registry.get("default")
        if default_style is not None and default_style.foreground:
            palette.setColor(QPalette.ColorRole.Text, QColor(default_style.foreground))
        self._editor.setPalette(palette)
        layout.addWidget(self._editor)

        self._highlighter = OverlaySyntaxHighlighter(self._editor.document(), self.session.registry)

        self._search_edit = QLineEdit()
        self._search_edit.setPlaceholderText("Search...")
        self._search_edit.returnPressed.connect(self._on_search_entered)
        self._search_edit.hide()
        layout.addWidget(self._search_edit)

        self._info_label = QLabel()
        self._info_label.setWordWrap(True)
        layout.addWidget(self._info_label)

        self.setCentralWidget(central)
        self._status_label = QLabel()
        self.statusBar().addPermanentWidget(self._status_label, 1)

    def _add_action(self, shortcut: str, slot, *args) -> QAction:
        action = QAction(self)
        action.setShortcut(QKeySequence(shortcut))
        action.setShortcutContext(Qt.ShortcutContext.WindowShortcut)
        action.triggered.connect(lambda checked=False: slot(*args))
        self.addAction(action)
        return action

    def _setup_actions(self) -> None:
        """Bind keys to session events."""
        self._add_action("B", self.toggle_family, AnnotatorFamily.BRACKET)
        self._add_action("C", self.toggle_family, AnnotatorFamily.COLOR)
        self._add_action("L", self.toggle_family, AnnotatorFamily.LINT)
        self._add_action("M", self.cycle_blame_mode)

        for number, bracket in enumerate(BRACKET_PAIRS, start=1):
            self._add_action(str(number), self.toggle_bracket_type, bracket)

        for number, pattern in enumerate(self.session.lint.patterns[:9], start=1):
            self._add_action(f"Ctrl+{number}", self.toggle_lint_keyword, pattern.keyword)

        self._add_action("/", self.open_search)
        self._add_action("Ctrl+F", self.open_search)
        self._add_action("Esc", self.close_search)
        self._add_action("N", self.next_match)
        self._add_action("F3", self.next_match)
        self._add_action("Shift+N", self.prev_match)
        self._add_action("Shift+F3", self.prev_match)
        self._add_action("Ctrl+G", self.ask_jump_to_line)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_file(self, path: Path | str, filetype: Optional[str] = None) -> bool:
        """Load a file into the view. Shows an error dialog on failure."""
        result = self.file_service.read_file(path, filetype=filetype)
        if not result.success:
            logging.error(f"SourceViewWindow - Could not open {path}: {result.error}")
            QMessageBox.warning(self, "Open failed", result.error or "Unknown error")
            return False

        file_content = result.content
        self.set_content(file_content.content, file_content.filetype)
        self.setWindowTitle(f"{Path(path).name} - srcview")
        return True

    def set_content(self, content: str, filetype: str) -> None:
        self.session.set_content(content, filetype)
        self._highlighter.clear_spans()
        self._editor.setPlainText(content)
        self.refresh()

    def apply_blame(self, result: BlameResult) -> None:
        if not result.success:
            self._info_label.setText(f"No blame data: {result.error}")
            return
        self.session.set_attribution(result.records)
        self.refresh()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def refresh(self) -> None:
        """Start a highlight pass for the current state."""
        self.controller.submit()
        self._update_status()

    def toggle_family(self, family: AnnotatorFamily) -> None:
        self.session.toggle_family(family)
        self.refresh()

    def toggle_bracket_type(self, bracket: str) -> None:
        self.session.toggle_bracket_type(bracket)
        self.refresh()

    def toggle_lint_keyword(self, keyword: str) -> None:
        self.session.toggle_lint_keyword(keyword)
        self.refresh()

    def cycle_blame_mode(self) -> None:
        self.session.cycle_blame_mode()
        self.refresh()

    def open_search(self) -> None:
        self._search_edit.show()
        self._search_edit.setFocus()
        self._search_edit.selectAll()

    def close_search(self) -> None:
        self._search_edit.hide()
        self._editor.setFocus()

    def next_match(self) -> None:
        self._scroll_to(self.session.next_match())
        self.refresh()

    def prev_match(self) -> None:
        self._scroll_to(self.session.prev_match())
        self.refresh()

    def ask_jump_to_line(self) -> None:
        line_count = self._editor.blockCount()
        line, ok = QInputDialog.getInt(self, "Go to line", f"Line (1-{line_count}):", 1, 1, line_count)
        if ok:
            self.jump_to_line(line - 1)

    def jump_to_line(self, line: int) -> None:
        self.session.jump_to_line(line)
        self._scroll_to(max(0, line - self.session.scroll_context_lines))
        self._update_status()

    @pyqtSlot()
    def _on_search_entered(self) -> None:
        self._scroll_to(self.session.set_search_term(self._search_edit.text()))
        self.close_search()
        self.refresh()

    def _scroll_to(self, line: Optional[int]) -> None:
        if line is not None:
            self._editor.verticalScrollBar().setValue(line)

    @pyqtSlot(object)
    def _on_highlighted(self, result: HighlightResult) -> None:
        if result.ticket.context.content != self._editor.toPlainText():
            logging.warning("SourceViewWindow - Highlight result does not match the document, dropped")
            return
        self._highlighter.set_spans(result.spans, result.ticket.context.content)

    @pyqtSlot(str, str)
    def _on_highlight_failed(self, error_type: str, message: str) -> None:
        self._info_label.setText(f"Highlighting failed ({error_type}): {message}")

    def _update_status(self) -> None:
        self._status_label.setText("  |  ".join(self.session.status_lines()))
        self._info_label.setText(self.session.message)
