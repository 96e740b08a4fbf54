"""
Main entry point for the srcview source viewer.

Wires settings, logging and the viewer window together. Covers:
- Command line argument parsing
- Logging configuration
- Settings loading and command line overrides
- Exception handling
- Main window creation
- Headless statistics output
"""

from __future__ import annotations

import argparse
import faulthandler
import logging
import os
import signal
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, TextIO

from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication, QMessageBox

from srcview.core.lexical import count_brackets
from srcview.core.models import BlameMode
from srcview.core.patterns import count_keywords
from srcview.core.session import ViewerSession
from srcview.core.styles import AUTHOR_TINTS, BACKGROUNDS, get_available_sheets, get_sheet_by_name
from srcview.services.blame_source import BlameResult, GitBlameService, load_json_records
from srcview.services.file_io import FileIOService
from srcview.services.settings import ApplicationSettings, SettingsManager


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "srcview"
APP_DISPLAY_NAME = "Source View"
APP_VERSION = "0.3.0"
APP_ORGANIZATION = "srcview"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    path: Optional[str] = None
    filetype: Optional[str] = None
    blame: bool = False
    blame_file: Optional[str] = None
    blame_mode: Optional[BlameMode] = None
    sheet: Optional[str] = None
    search: Optional[str] = None
    line: Optional[int] = None
    disabled: List[str] = field(default_factory=list)
    config_file: Optional[str] = None
    reset_settings: bool = False
    stats: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Log lines with the level name tinted on a terminal."""

    LEVEL_TINTS = {
        logging.DEBUG: '\033[2m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[1;31m',
    }

    def __init__(self, tinted: bool = True):
        super().__init__(
            fmt='%(asctime)s %(levelname)s [%(name)s] %(message)s',
            datefmt='%H:%M:%S'
        )
        self.tinted = tinted and sys.stderr.isatty()

    def formatMessage(self, record: logging.LogRecord) -> str:
        tint = self.LEVEL_TINTS.get(record.levelno) if self.tinted else None
        if tint is None:
            return super().formatMessage(record)
        plain = record.levelname
        record.levelname = f"{tint}{plain}\033[0m"
        try:
            return super().formatMessage(record)
        finally:
            record.levelname = plain


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Route all logging through the root logger.

    Messages go to stderr so ``--stats`` output on stdout stays
    parseable. A log file, when given, receives the same records
    without terminal tints.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    handlers[0].setFormatter(LogFormatter(tinted=True))

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        handlers[-1].setFormatter(LogFormatter(tinted=False))

    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    # chardet logs every detection probe at DEBUG
    logging.getLogger('chardet').setLevel(logging.WARNING)

    return root_logger


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """
    sys.excepthook replacement.

    Logs the traceback and, once a QApplication exists, shows it in a
    dialog the user can dismiss or quit from.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._app: Optional[QApplication] = None

    def set_application(self, app: QApplication) -> None:
        self._app = app

    def handle_exception(self, exc_type: type, exc_value: BaseException, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical(
            f"{APP_NAME} - uncaught {exc_type.__name__}",
            exc_info=(exc_type, exc_value, exc_tb)
        )

        if self._app is not None and QApplication.instance() is not None:
            details = ''.join(traceback.format_exception(exc_type, exc_value, exc_tb))
            self._report(f"{exc_type.__name__}: {exc_value}", details)

    def _report(self, summary: str, details: str) -> None:
        box = QMessageBox(QMessageBox.Icon.Critical, f"{APP_DISPLAY_NAME} error", summary)
        box.setInformativeText("The viewer may be in an inconsistent state.")
        box.setDetailedText(details)
        keep_going = box.addButton("Continue", QMessageBox.ButtonRole.AcceptRole)
        box.addButton("Quit", QMessageBox.ButtonRole.DestructiveRole)
        box.setDefaultButton(keep_going)
        box.exec()

        if box.clickedButton() is not keep_going:
            QApplication.quit()


# =============================================================================
# Command Line Parsing
# =============================================================================

FAMILY_SWITCHES = ('brackets', 'colors', 'blame', 'lint')


def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """Read srcview options from args, or sys.argv when args is None."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Source viewer with bracket, color, blame, lint and search overlays",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s app.py                         View a file
  %(prog)s app.py --blame                 View with git blame overlay
  %(prog)s app.ts --search useState       View and search
  %(prog)s app.py --stats                 Print overlay statistics and exit
        """
    )

    parser.add_argument('path', nargs='?', help='File to view')
    parser.add_argument('--filetype', help='Override the filetype inferred from the extension')

    blame_group = parser.add_mutually_exclusive_group()
    blame_group.add_argument(
        '--blame',
        action='store_true',
        help='Load attribution from git blame'
    )
    blame_group.add_argument(
        '--blame-file',
        help='Load attribution from a JSON file'
    )
    parser.add_argument(
        '--blame-mode',
        choices=[mode.name.lower() for mode in BlameMode],
        default=None,
        help='Initial blame display mode'
    )

    parser.add_argument(
        '--sheet',
        choices=get_available_sheets(),
        default=None,
        help='Style sheet'
    )
    parser.add_argument('--search', help='Initial search term')
    parser.add_argument('--line', type=int, help='Line to jump to (1-based)')
    parser.add_argument(
        '--disable',
        action='append',
        choices=FAMILY_SWITCHES,
        default=[],
        help='Start with an overlay family disabled (repeatable)'
    )

    parser.add_argument('-c', '--config', help='Settings file path')
    parser.add_argument(
        '--reset-settings',
        action='store_true',
        help='Reset all settings to defaults'
    )
    parser.add_argument(
        '--stats',
        action='store_true',
        help='Print bracket, lint and blame statistics instead of opening a window'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='Log level'
    )
    parser.add_argument('--log-file', help='Also write the log to this file')

    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    parsed = parser.parse_args(args)

    if parsed.stats and not parsed.path:
        parser.error("--stats needs a file")

    result = CommandLineArgs()
    result.path = parsed.path
    result.filetype = parsed.filetype
    result.blame = parsed.blame
    result.blame_file = parsed.blame_file
    result.sheet = parsed.sheet
    result.search = parsed.search
    result.line = parsed.line
    result.disabled = list(parsed.disable)
    result.config_file = parsed.config
    result.reset_settings = parsed.reset_settings
    result.stats = parsed.stats
    result.log_file = parsed.log_file

    if parsed.blame_mode:
        result.blame_mode = BlameMode[parsed.blame_mode.upper()]

    result.log_level = 'DEBUG' if parsed.verbose else parsed.log_level

    return result


# =============================================================================
# Session Setup
# =============================================================================

def apply_overrides(settings: ApplicationSettings, args: CommandLineArgs) -> ApplicationSettings:
    """Apply command line options on top of loaded settings."""
    annotators = settings.annotators

    for family in args.disabled:
        setattr(annotators, f"{family}_enabled", False)

    if args.blame_mode is not None:
        annotators.blame_mode = args.blame_mode

    if args.sheet:
        settings.ui.style_sheet = args.sheet
        settings.ui.background = BACKGROUNDS[args.sheet]

    return settings


def create_session(settings: ApplicationSettings) -> ViewerSession:
    """Build a viewer session from settings."""
    sheet = settings.ui.style_sheet
    return ViewerSession(
        style_sheet=get_sheet_by_name(sheet),
        background=settings.ui.background,
        author_tints=AUTHOR_TINTS.get(sheet, AUTHOR_TINTS["GitHub Dark"]),
        settings=settings.annotators,
        scroll_context_lines=settings.ui.scroll_context_lines,
    )


def load_attribution(args: CommandLineArgs) -> Optional[BlameResult]:
    """Attribution requested on the command line, if any."""
    if args.blame_file:
        return load_json_records(args.blame_file)
    if args.blame and args.path:
        return GitBlameService().blame_file(args.path)
    return None


def jump_to_requested_line(window, line: int) -> bool:
    """Jump to a 1-based --line value. Out-of-range lines are logged and skipped."""
    try:
        window.jump_to_line(line - 1)
    except ValueError as e:
        logging.warning(f"{APP_NAME} - --line {line} ignored: {e}")
        return False
    return True


def print_stats(session: ViewerSession, out: Optional[TextIO] = None) -> None:
    """Write overlay statistics for the session's content (stdout by default)."""
    out = out or sys.stdout
    content = session.content

    brackets = count_brackets(content)
    out.write(f"Brackets: {brackets.total} pair(s), max depth {brackets.max_depth}\n")
    for bracket, count in brackets.by_type.items():
        out.write(f"  {bracket}: {count}\n")

    out.write("Lint keywords:\n")
    for keyword, count in count_keywords(content, session.lint.patterns).items():
        out.write(f"  {keyword}: {count}\n")

    if len(session.attribution):
        stats = session.attribution.stats(session.blame.now)
        out.write(f"Blame: {stats.total_lines} attributed line(s)\n")
        for author, count in sorted(stats.by_author.items(), key=lambda item: -item[1]):
            out.write(f"  {author}: {count}\n")
        for bucket, count in stats.by_age.items():
            out.write(f"  [{bucket.label}] {count}\n")

    if session.search.term:
        out.write(f"{session.search.summary()}\n")


# =============================================================================
# Signal Handlers
# =============================================================================

def setup_signal_handlers() -> Optional[QTimer]:
    """Quit the event loop on SIGINT and SIGTERM. Not used on Windows."""
    if sys.platform == 'win32':
        return None

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    # Qt blocks in C++; a periodic wakeup lets Python run the handler
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(500)
    return timer


def _signal_handler(signum, frame) -> None:
    """Signal handler."""
    logging.info(f"{APP_NAME} - signal {signum}, closing viewer")
    QApplication.quit()


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Run srcview and return the process exit code.

    With ``--stats`` the file is analysed headlessly and a report is
    printed; otherwise the viewer window is opened.
    """
    if sys.stdout is None:
        sys.stdout = open(os.devnull, 'w')
    if sys.stderr is None:
        sys.stderr = open(os.devnull, 'w')

    faulthandler.enable()

    args = parse_arguments(argv)

    logger = setup_logging(args.log_level, Path(args.log_file) if args.log_file else None)
    logger.info(f"Starting {APP_NAME} v{APP_VERSION}")

    exception_handler = ExceptionHandler(logger)
    sys.excepthook = exception_handler.handle_exception

    settings_manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    settings = settings_manager.reset() if args.reset_settings else settings_manager.settings
    settings = apply_overrides(settings, args)

    session = create_session(settings)

    if args.stats:
        result = FileIOService().read_file(args.path, filetype=args.filetype)
        if not result.success:
            logger.error(f"Could not read {args.path}: {result.error}")
            return 1
        session.set_content(result.content.content, result.content.filetype)
        attribution = load_attribution(args)
        if attribution is not None and attribution.success:
            session.set_attribution(attribution.records)
        if args.search:
            session.set_search_term(args.search)
        print_stats(session)
        return 0

    try:
        app = QApplication(sys.argv[:1])
        app.setApplicationName(APP_NAME)
        app.setApplicationDisplayName(APP_DISPLAY_NAME)
        app.setApplicationVersion(APP_VERSION)
        app.setOrganizationName(APP_ORGANIZATION)
        exception_handler.set_application(app)

        signal_timer = setup_signal_handlers()

        # Imported here so --stats never loads the widget stack
        from srcview.ui.source_view import SourceViewWindow

        window = SourceViewWindow(session, settings.ui)

        if args.path:
            if not window.load_file(args.path, filetype=args.filetype):
                return 1
            settings_manager.add_recent_file(str(Path(args.path).resolve()))

            attribution = load_attribution(args)
            if attribution is not None:
                window.apply_blame(attribution)

            if args.search:
                session.set_search_term(args.search)
                window.refresh()
            if args.line is not None:
                jump_to_requested_line(window, args.line)

        window.show()
        logger.info(f"{APP_NAME} - viewer shown")

        exit_code = app.exec()
        window.controller.wait()

        logger.info(f"{APP_NAME} - event loop returned {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"{APP_NAME} - startup failed: {e}", exc_info=True)

        if QApplication.instance():
            QMessageBox.critical(
                None,
                "Fatal Error",
                f"The application failed to start:\n\n{e}\n\n"
                "Please check the logs for more information."
            )
        return 1


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
