"""
Style registry and style sheets.

The registry maps style ids to visual attributes. Two scopes exist:
- static styles (base syntax, bracket, blame, lint, search) registered
  once at startup
- versioned styles (color swatches) registered once per content
  version, before any scan of that version runs

Registration is append-only. seal() closes versioned registration
before scanning; static styles (e.g. per-author blame tints) may still
be added later.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Mapping, Optional

from PyQt6.QtGui import QColor, QFont, QTextCharFormat

from srcview.core.models import AgeBucket, StyleDefinition


class StyleRegistryError(Exception):
    """Base class for style registry errors."""
    pass


class UnknownStyleError(StyleRegistryError, KeyError):
    """A span references a style id that was never registered."""

    def __init__(self, style_id: str):
        super().__init__(style_id)
        self.style_id = style_id

    def __str__(self) -> str:
        return f"Unknown style id: {self.style_id!r}"


class StyleConflictError(StyleRegistryError):
    """A style id was registered twice with different attributes."""
    pass


class SealedRegistryError(StyleRegistryError):
    """Registration attempted after the registry was sealed for scanning."""
    pass


class StyleRegistry:
    """
    Append-only style id -> StyleDefinition mapping.

    Usage:
        registry = StyleRegistry(StyleSheets.github_dark())
        registry.begin_version(fingerprint)
        register_color_styles(registry, content, background)
        registry.seal()
        ... compose spans ...
    """

    def __init__(self, static_styles: Optional[Mapping[str, StyleDefinition]] = None):
        self._static: Dict[str, StyleDefinition] = {}
        self._versioned: Dict[str, StyleDefinition] = {}
        self._version: Optional[str] = None
        self._sealed = False
        self._formats: Dict[str, QTextCharFormat] = {}

        for name, style in (static_styles or {}).items():
            self.register(name, style, static=True)

    @property
    def version(self) -> Optional[str]:
        return self._version

    @property
    def sealed(self) -> bool:
        return self._sealed

    def begin_version(self, version: str) -> bool:
        """
        Open registration for a content version.

        Returns:
            True if this is a new version (versioned styles were reset),
            False if the version is already current
        """
        if version == self._version:
            return False

        for name in self._versioned:
            self._formats.pop(name, None)
        self._versioned.clear()
        self._version = version
        self._sealed = False
        logging.debug(f"StyleRegistry - Started version {version}")
        return True

    def seal(self) -> None:
        """Close registration; scans may now run against this version."""
        self._sealed = True

    def register(self, name: str, style: StyleDefinition, static: bool = False) -> None:
        """
        Register a style.

        Re-registering an identical definition is a no-op.

        Raises:
            SealedRegistryError: If a versioned style is registered after seal()
            StyleConflictError: If name is registered with other attributes
        """
        existing = self.get(name)
        if existing is not None:
            if existing != style:
                raise StyleConflictError(
                    f"Style {name!r} already registered as {existing}, not {style}"
                )
            return

        if self._sealed and not static:
            raise SealedRegistryError(f"Cannot register {name!r}: version {self._version} is sealed")

        if static:
            self._static[name] = style
        else:
            self._versioned[name] = style

    def register_many(self, styles: Mapping[str, StyleDefinition], static: bool = False) -> None:
        for name, style in styles.items():
            self.register(name, style, static=static)

    def get(self, name: str) -> Optional[StyleDefinition]:
        style = self._static.get(name)
        if style is None:
            style = self._versioned.get(name)
        return style

    def require(self, name: str) -> StyleDefinition:
        """Look up a style, failing fast on unknown ids."""
        style = self.get(name)
        if style is None:
            raise UnknownStyleError(name)
        return style

    def __contains__(self, name: str) -> bool:
        return name in self._static or name in self._versioned

    def __iter__(self) -> Iterator[str]:
        yield from self._static
        yield from self._versioned

    def __len__(self) -> int:
        return len(self._static) + len(self._versioned)

    def snapshot(self) -> 'StyleRegistry':
        """Copy of the current styles, for passes running off the UI thread."""
        copy = StyleRegistry()
        copy._static = dict(self._static)
        copy._versioned = dict(self._versioned)
        copy._version = self._version
        copy._sealed = self._sealed
        return copy

    def char_format(self, name: str) -> QTextCharFormat:
        """Qt character format for a style id, cached."""
        fmt = self._formats.get(name)
        if fmt is None:
            fmt = to_char_format(self.require(name))
            self._formats[name] = fmt
        return fmt


def to_char_format(style: StyleDefinition) -> QTextCharFormat:
    """Build a QTextCharFormat carrying only the attributes the style sets."""
    fmt = QTextCharFormat()

    if style.foreground:
        fmt.setForeground(QColor(style.foreground))
    if style.background:
        fmt.setBackground(QColor(style.background))
    if style.bold:
        fmt.setFontWeight(QFont.Weight.Bold)
    if style.italic:
        fmt.setFontItalic(True)
    if style.underline:
        fmt.setFontUnderline(True)

    return fmt


def _fg(color: str, bold: bool = False, italic: bool = False) -> StyleDefinition:
    return StyleDefinition(foreground=color, bold=bold, italic=italic)


def _bg(color: str) -> StyleDefinition:
    return StyleDefinition(background=color)


class StyleSheets:
    """Predefined style sheets: base syntax plus every annotator family."""

    @staticmethod
    def github_dark() -> Dict[str, StyleDefinition]:
        """GitHub Dark, for the #0D1117 background."""
        return {
            # Base syntax
            "keyword": _fg("#FF7B72", bold=True),
            "string": _fg("#A5D6FF"),
            "comment": _fg("#8B949E", italic=True),
            "number": _fg("#79C0FF"),
            "constant": _fg("#79C0FF"),
            "function": _fg("#D2A8FF"),
            "type": _fg("#FFA657"),
            "decorator": _fg("#FFA657"),
            "operator": _fg("#FF7B72"),
            "variable": _fg("#E6EDF3"),
            "property": _fg("#79C0FF"),
            "punctuation": _fg("#F0F6FC"),
            "default": _fg("#E6EDF3"),

            # Bracket depth
            "bracket.depth0": _fg("#FFD700", bold=True),   # Gold
            "bracket.depth1": _fg("#FF00FF", bold=True),   # Magenta
            "bracket.depth2": _fg("#00FFFF", bold=True),   # Cyan
            "bracket.depth3": _fg("#00FF00", bold=True),   # Green
            "bracket.depth4": _fg("#FFA500", bold=True),   # Orange
            "bracket.depth5": _fg("#6495ED", bold=True),   # Cornflower blue

            # Blame age, coldest to brightest
            "blame.ancient": _bg("#3d1a1a"),
            "blame.old": _bg("#3d2b1a"),
            "blame.medium": _bg("#3d3d1a"),
            "blame.recent": _bg("#1a3d2b"),
            "blame.fresh": _bg("#1a2b3d"),
            "blame.new": _bg("#1a3d1a"),
            "blame.author.unknown": _bg("#2a2a2a"),

            # Lint keywords
            "lint.todo": StyleDefinition(foreground="#000000", background="#FFD700", bold=True),
            "lint.fixme": StyleDefinition(foreground="#FFFFFF", background="#DC2626", bold=True),
            "lint.hack": StyleDefinition(foreground="#000000", background="#FFA500", bold=True),
            "lint.note": StyleDefinition(foreground="#FFFFFF", background="#2563EB", bold=True),
            "lint.xxx": StyleDefinition(foreground="#FFFFFF", background="#9333EA", bold=True),
            "lint.deprecated": StyleDefinition(foreground="#9CA3AF", background="#374151",
                                               italic=True, underline=True),

            # Search
            "search.match": StyleDefinition(foreground="#000000", background="#E3B341"),
            "search.current": StyleDefinition(foreground="#000000", background="#FF8C00", bold=True),
        }

    @staticmethod
    def default_light() -> Dict[str, StyleDefinition]:
        """Light sheet, for a white background."""
        return {
            "keyword": _fg("#0000C8", bold=True),
            "string": _fg("#A31515"),
            "comment": _fg("#008000", italic=True),
            "number": _fg("#008000"),
            "constant": _fg("#0000C8"),
            "function": _fg("#800000"),
            "type": _fg("#008080"),
            "decorator": _fg("#804000"),
            "operator": _fg("#000000"),
            "variable": _fg("#000000"),
            "property": _fg("#001080"),
            "punctuation": _fg("#000000"),
            "default": _fg("#000000"),

            "bracket.depth0": _fg("#B8860B", bold=True),
            "bracket.depth1": _fg("#C000C0", bold=True),
            "bracket.depth2": _fg("#008B8B", bold=True),
            "bracket.depth3": _fg("#228B22", bold=True),
            "bracket.depth4": _fg("#D2691E", bold=True),
            "bracket.depth5": _fg("#1E50C8", bold=True),

            "blame.ancient": _bg("#F0E0E0"),
            "blame.old": _bg("#F0E8E0"),
            "blame.medium": _bg("#F0F0E0"),
            "blame.recent": _bg("#E0F0E8"),
            "blame.fresh": _bg("#E0E8F0"),
            "blame.new": _bg("#DCF5DC"),
            "blame.author.unknown": _bg("#EEEEEE"),

            "lint.todo": StyleDefinition(foreground="#000000", background="#FFE066", bold=True),
            "lint.fixme": StyleDefinition(foreground="#FFFFFF", background="#C62828", bold=True),
            "lint.hack": StyleDefinition(foreground="#000000", background="#FFB74D", bold=True),
            "lint.note": StyleDefinition(foreground="#FFFFFF", background="#1565C0", bold=True),
            "lint.xxx": StyleDefinition(foreground="#FFFFFF", background="#7B1FA2", bold=True),
            "lint.deprecated": StyleDefinition(foreground="#757575", background="#EEEEEE",
                                               italic=True, underline=True),

            "search.match": StyleDefinition(foreground="#000000", background="#FFFF00"),
            "search.current": StyleDefinition(foreground="#000000", background="#FF9632", bold=True),
        }


# Background tints handed out to blame authors in order of appearance
AUTHOR_TINTS: Dict[str, tuple] = {
    "GitHub Dark": ("#1a1a4d", "#1a4d1a", "#4d1a4d", "#4d3d1a", "#1a3d4d", "#4d1a2b"),
    "Default Light": ("#DDE3FF", "#DDF5DD", "#F5DDF5", "#F5EDD5", "#D5EDF5", "#F5D5E0"),
}

BACKGROUNDS: Dict[str, str] = {
    "GitHub Dark": "#0D1117",
    "Default Light": "#FFFFFF",
}


def get_available_sheets() -> list:
    """Names of the available style sheets."""
    return ["GitHub Dark", "Default Light"]


def get_sheet_by_name(name: str) -> Dict[str, StyleDefinition]:
    """Get a style sheet by name, GitHub Dark if unknown."""
    sheets = {
        "GitHub Dark": StyleSheets.github_dark,
        "Default Light": StyleSheets.default_light,
    }
    factory = sheets.get(name, StyleSheets.github_dark)
    return factory()


def age_style_id(bucket: AgeBucket) -> str:
    return f"blame.{bucket.label}"
