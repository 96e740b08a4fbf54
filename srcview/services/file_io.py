"""
File I/O service for loading source files into the viewer.

Turns bytes on disk into the normalized text the overlays index into:
- Guessing the encoding with chardet
- Stripping a UTF-8 BOM
- Refusing binary files
- Rewriting CRLF and CR to LF
- Filetype inference from the file extension
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Dict, Optional

import chardet


class LineEnding(Enum):
    """Line terminator found in the file before normalization."""
    LF = auto()
    CRLF = auto()
    CR = auto()
    MIXED = auto()
    NONE = auto()    # single line


# File extension -> filetype name used by the annotators
FILETYPE_EXTENSIONS: Dict[str, str] = {
    ".py": "python", ".pyw": "python", ".pyi": "python",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript", ".mts": "typescript", ".cts": "typescript",
    ".tsx": "tsx",
    ".rs": "rust",
    ".go": "go",
    ".c": "c", ".h": "c",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hh": "cpp",
    ".java": "java",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".kt": "kotlin", ".kts": "kotlin",
    ".scala": "scala",
    ".lua": "lua",
    ".sh": "sh", ".bash": "bash",
    ".css": "css",
    ".scss": "scss",
    ".html": "html", ".htm": "html",
}

BOMS = (
    (b'\xef\xbb\xbf', 'utf-8-sig'),
    (b'\xff\xfe', 'utf-16'),
    (b'\xfe\xff', 'utf-16'),
)


def filetype_for_path(path: Path | str) -> str:
    """Filetype name for a path, '' when the extension is unknown."""
    return FILETYPE_EXTENSIONS.get(Path(path).suffix.lower(), "")


@dataclass
class FileContent:
    """Decoded source text plus what was stripped or guessed to get it."""
    content: str
    encoding: str
    line_ending: LineEnding
    bom: bool
    size: int
    filetype: str = ""

    @property
    def line_count(self) -> int:
        return self.content.count("\n") + 1


@dataclass
class ReadResult:
    """Outcome of FileIOService.read_file."""
    success: bool
    content: Optional[FileContent] = None
    error: Optional[str] = None
    is_binary: bool = False


class FileIOService:
    """Service for reading source files safely."""

    # Leading bytes of formats that are never source
    BINARY_SIGNATURES = [
        b'\x89PNG',        # PNG
        b'\xff\xd8\xff',   # JPEG
        b'GIF8',           # GIF
        b'PK\x03\x04',     # ZIP
        b'\x1f\x8b',       # GZIP
        b'%PDF',           # PDF
        b'\x7fELF',        # ELF
    ]

    def __init__(
        self,
        default_encoding: str = 'utf-8',
        fallback_encoding: str = 'latin-1',
        binary_check_size: int = 8192,
        max_text_size: int = 20 * 1024 * 1024
    ):
        self.default_encoding = default_encoding
        self.fallback_encoding = fallback_encoding
        self.binary_check_size = binary_check_size
        self.max_text_size = max_text_size

    def read_file(
        self,
        path: Path | str,
        encoding: Optional[str] = None,
        filetype: Optional[str] = None
    ) -> ReadResult:
        """
        Read a source file with automatic encoding detection.

        Line endings are normalized to '\\n' so offsets agree with the
        annotators; the original style is kept in FileContent.line_ending.

        Args:
            path: Path to the file
            encoding: Codec to use instead of detection
            filetype: Force a filetype (inferred from the extension if None)

        Returns:
            ReadResult; on failure success is False and error says why
        """
        path = Path(path)

        if not path.exists():
            return ReadResult(success=False, error=f"File not found: {path}")

        if not path.is_file():
            return ReadResult(success=False, error=f"Not a file: {path}")

        try:
            size = path.stat().st_size
            if size > self.max_text_size:
                return ReadResult(
                    success=False,
                    error=f"File too large to view ({size / 1024 / 1024:.2f} MB)"
                )

            raw_content = path.read_bytes()
        except PermissionError:
            logging.error(f"FileIOService - Permission denied: {path}")
            return ReadResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            logging.error(f"FileIOService - Failed to read {path}: {e}")
            return ReadResult(success=False, error=f"OS error: {e}")

        bom_encoding = self._detect_bom(raw_content)
        if bom_encoding is None and self._is_binary(raw_content[:self.binary_check_size]):
            return ReadResult(success=False, is_binary=True, error="File appears to be binary")

        detected_encoding = encoding or bom_encoding or self._detect_encoding(raw_content)

        try:
            text = raw_content.decode(detected_encoding)
        except (UnicodeDecodeError, LookupError) as e:
            logging.warning(
                f"FileIOService - Could not decode {path} as {detected_encoding}, "
                f"falling back to {self.fallback_encoding}: {e}"
            )
            text = raw_content.decode(self.fallback_encoding, errors='replace')
            detected_encoding = self.fallback_encoding

        # utf-16 decoding leaves the BOM as U+FEFF
        text = text.lstrip('\ufeff') if bom_encoding else text

        line_ending = self._detect_line_ending(text)
        text = text.replace('\r\n', '\n').replace('\r', '\n')

        return ReadResult(
            success=True,
            content=FileContent(
                content=text,
                encoding=detected_encoding,
                line_ending=line_ending,
                bom=bom_encoding is not None,
                size=size,
                filetype=filetype if filetype is not None else filetype_for_path(path),
            )
        )

    def _detect_bom(self, content: bytes) -> Optional[str]:
        for bom, encoding in BOMS:
            if content.startswith(bom):
                return encoding
        return None

    def _is_binary(self, chunk: bytes) -> bool:
        """Check if a chunk of bytes looks binary."""
        for sig in self.BINARY_SIGNATURES:
            if chunk.startswith(sig):
                return True

        if b'\x00' in chunk:
            return True

        # Ratio of control bytes outside tab/newline/carriage return
        non_text = sum(1 for b in chunk if b < 9 or (13 < b < 32))
        return len(chunk) > 0 and non_text / len(chunk) > 0.3

    def _detect_encoding(self, content: bytes) -> str:
        """chardet guess, or the default when it is unsure."""
        if not content:
            return self.default_encoding

        result = chardet.detect(content)

        if result['confidence'] > 0.7 and result['encoding']:
            encoding = result['encoding'].lower()
            if encoding == 'ascii':
                return 'utf-8'
            return encoding

        return self.default_encoding

    def _detect_line_ending(self, content: str) -> LineEnding:
        crlf = content.count('\r\n')
        lf = content.count('\n') - crlf
        cr = content.count('\r') - crlf

        kinds = sum(1 for count in (crlf, lf, cr) if count)
        if kinds == 0:
            return LineEnding.NONE
        if kinds > 1:
            return LineEnding.MIXED
        if crlf:
            return LineEnding.CRLF
        return LineEnding.LF if lf else LineEnding.CR
