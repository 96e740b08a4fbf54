"""
Persistent viewer settings.

Which overlays start enabled, their flags and the viewer look, stored
as JSON in the per-user config directory.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Callable, List, Optional
from enum import Enum

from srcview.core.models import BlameMode
from srcview.core.overlay import BLAME_FILETYPES, LINT_FILETYPES
from srcview.core.patterns import DEFAULT_LINT_PATTERNS


@dataclass
class AnnotatorSettings:
    """Which overlays start enabled and how they are configured."""
    brackets_enabled: bool = True
    colors_enabled: bool = True
    blame_enabled: bool = True
    lint_enabled: bool = True

    bracket_types: List[str] = field(default_factory=lambda: ["(", "[", "{", "<"])
    lint_keywords: List[str] = field(
        default_factory=lambda: [p.keyword for p in DEFAULT_LINT_PATTERNS]
    )
    blame_mode: BlameMode = BlameMode.AGE
    strict_attribution: bool = False

    blame_filetypes: List[str] = field(default_factory=lambda: sorted(BLAME_FILETYPES))
    lint_filetypes: List[str] = field(default_factory=lambda: sorted(LINT_FILETYPES))


@dataclass
class UISettings:
    """Viewer window look."""
    style_sheet: str = "GitHub Dark"
    background: str = "#0D1117"
    font_family: str = "Monospace"
    font_size: int = 11
    window_width: int = 1000
    window_height: int = 750
    scroll_context_lines: int = 3


@dataclass
class ApplicationSettings:
    """Everything persisted between runs."""
    annotators: AnnotatorSettings = field(default_factory=AnnotatorSettings)
    ui: UISettings = field(default_factory=UISettings)

    recent_files: List[str] = field(default_factory=list)
    recent_files_limit: int = 10


class SettingsManager:
    """Loads, saves and resets srcview settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self._get_default_path()
        self._settings: Optional[ApplicationSettings] = None
        self._observers: List[Callable[[ApplicationSettings], None]] = []

    @staticmethod
    def _get_default_path() -> Path:
        """settings.json under APPDATA or XDG_CONFIG_HOME."""
        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'srcview' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'srcview' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        """Current settings, read from disk on first access."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Load settings from disk, defaults if missing or unreadable."""
        if not self.settings_path.exists():
            return ApplicationSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return self._from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.warning(f"SettingsManager - Using defaults, could not load {self.settings_path}: {e}")
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """Write settings to disk. Returns False on failure."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            data = self._to_dict(settings)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)

        except OSError as e:
            logging.error(f"SettingsManager - Failed to save {self.settings_path}: {e}")
            return False

        self._settings = settings
        self._notify_observers()
        return True

    def reset(self) -> ApplicationSettings:
        """Replace the stored settings with defaults."""
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    def add_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        """Call callback with the new settings after every save."""
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        """Stop notifying callback."""
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        for callback in self._observers:
            callback(self._settings)

    def add_recent_file(self, path: str) -> None:
        """Add a path to the front of the recent files list."""
        settings = self.settings
        recent = [p for p in settings.recent_files if p != path]
        recent.insert(0, path)
        settings.recent_files = recent[:settings.recent_files_limit]
        self.save()

    def _to_dict(self, settings: ApplicationSettings) -> dict:
        """Settings as JSON-ready data, enums by name."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.name
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            else:
                return obj

        return convert(asdict(settings))

    def _from_dict(self, data: dict) -> ApplicationSettings:
        """Rebuild settings from JSON data, defaulting missing keys."""
        def get_enum(enum_class: type, value: Any) -> Enum:
            if isinstance(value, str):
                try:
                    return enum_class[value]
                except KeyError:
                    return list(enum_class)[0]
            return value

        annotator_data = data.get('annotators', {})
        defaults = AnnotatorSettings()
        annotators = AnnotatorSettings(
            brackets_enabled=annotator_data.get('brackets_enabled', defaults.brackets_enabled),
            colors_enabled=annotator_data.get('colors_enabled', defaults.colors_enabled),
            blame_enabled=annotator_data.get('blame_enabled', defaults.blame_enabled),
            lint_enabled=annotator_data.get('lint_enabled', defaults.lint_enabled),
            bracket_types=annotator_data.get('bracket_types', defaults.bracket_types),
            lint_keywords=annotator_data.get('lint_keywords', defaults.lint_keywords),
            blame_mode=get_enum(BlameMode, annotator_data.get('blame_mode', 'AGE')),
            strict_attribution=annotator_data.get('strict_attribution', defaults.strict_attribution),
            blame_filetypes=annotator_data.get('blame_filetypes', defaults.blame_filetypes),
            lint_filetypes=annotator_data.get('lint_filetypes', defaults.lint_filetypes),
        )

        ui_data = data.get('ui', {})
        ui_defaults = UISettings()
        ui = UISettings(
            style_sheet=ui_data.get('style_sheet', ui_defaults.style_sheet),
            background=ui_data.get('background', ui_defaults.background),
            font_family=ui_data.get('font_family', ui_defaults.font_family),
            font_size=ui_data.get('font_size', ui_defaults.font_size),
            window_width=ui_data.get('window_width', ui_defaults.window_width),
            window_height=ui_data.get('window_height', ui_defaults.window_height),
            scroll_context_lines=ui_data.get('scroll_context_lines', ui_defaults.scroll_context_lines),
        )

        return ApplicationSettings(
            annotators=annotators,
            ui=ui,
            recent_files=data.get('recent_files', []),
            recent_files_limit=data.get('recent_files_limit', 10),
        )
