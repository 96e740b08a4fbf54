"""
Services used by the viewer: file loading, content fingerprints,
settings and attribution sources.
"""

from srcview.services.file_io import FileContent, FileIOService, LineEnding, ReadResult, filetype_for_path
from srcview.services.hashing import content_version
from srcview.services.settings import AnnotatorSettings, ApplicationSettings, SettingsManager, UISettings
from srcview.services.blame_source import (
    BlameResult,
    GitBlameService,
    load_json_records,
    parse_line_porcelain,
)

__all__ = [
    'FileContent',
    'FileIOService',
    'LineEnding',
    'ReadResult',
    'filetype_for_path',
    'content_version',
    'AnnotatorSettings',
    'ApplicationSettings',
    'SettingsManager',
    'UISettings',
    'BlameResult',
    'GitBlameService',
    'load_json_records',
    'parse_line_porcelain',
]
