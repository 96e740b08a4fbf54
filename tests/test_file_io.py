"""
Tests for loading source files.
"""

import pytest

from srcview.services.file_io import FileIOService, LineEnding, filetype_for_path


@pytest.fixture
def service():
    return FileIOService()


def _write(tmp_path, name, data: bytes):
    path = tmp_path / name
    path.write_bytes(data)
    return path


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def test_ascii_file(service, tmp_path):
    result = service.read_file(_write(tmp_path, "app.py", b"print('hi')\n"))

    assert result.success
    assert result.content.content == "print('hi')\n"
    assert result.content.encoding == "utf-8"
    assert result.content.filetype == "python"
    assert not result.content.bom


def test_forced_encoding(service, tmp_path):
    path = _write(tmp_path, "a.py", "x = 'héllo'\n".encode("utf-8"))
    result = service.read_file(path, encoding="utf-8")
    assert result.content.content == "x = 'héllo'\n"


def test_utf8_bom_stripped(service, tmp_path):
    path = _write(tmp_path, "a.ts", b"\xef\xbb\xbf" + "let s = 'ü'\n".encode("utf-8"))
    result = service.read_file(path)

    assert result.success
    assert result.content.bom
    assert result.content.encoding == "utf-8-sig"
    assert result.content.content == "let s = 'ü'\n"
    assert result.content.filetype == "typescript"


def test_utf16_bom(service, tmp_path):
    path = _write(tmp_path, "a.js", "abc\n".encode("utf-16"))
    result = service.read_file(path)

    assert result.success
    assert result.content.content == "abc\n"


def test_undecodable_falls_back(tmp_path):
    path = _write(tmp_path, "a.py", b"x = '\xe9'\n")
    result = FileIOService().read_file(path, encoding="utf-8")

    assert result.success
    assert result.content.encoding == "latin-1"
    assert result.content.content == "x = 'é'\n"


# ---------------------------------------------------------------------------
# Line endings
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("data,ending", [
    (b"a\r\nb\r\n", LineEnding.CRLF),
    (b"a\nb\n", LineEnding.LF),
    (b"a\rb\r", LineEnding.CR),
    (b"a\r\nb\nc", LineEnding.MIXED),
    (b"abc", LineEnding.NONE),
])
def test_line_endings_detected_and_normalized(service, tmp_path, data, ending):
    result = service.read_file(_write(tmp_path, "f.txt", data))

    assert result.content.line_ending is ending
    assert "\r" not in result.content.content


def test_line_count(service, tmp_path):
    result = service.read_file(_write(tmp_path, "f.py", b"a\r\nb\r\nc"))
    assert result.content.content == "a\nb\nc"
    assert result.content.line_count == 3


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_binary_rejected(service, tmp_path):
    result = service.read_file(_write(tmp_path, "img.png", b"\x89PNG\r\n\x1a\n\x00\x00\x00"))

    assert not result.success
    assert result.is_binary


def test_null_bytes_rejected(service, tmp_path):
    result = service.read_file(_write(tmp_path, "blob.py", b"abc\x00def"))
    assert result.is_binary


def test_missing_file(service, tmp_path):
    result = service.read_file(tmp_path / "missing.py")
    assert not result.success
    assert result.error.startswith("File not found")


def test_directory_rejected(service, tmp_path):
    result = service.read_file(tmp_path)
    assert result.error.startswith("Not a file")


def test_too_large(tmp_path):
    result = FileIOService(max_text_size=4).read_file(_write(tmp_path, "a.py", b"0123456789"))
    assert not result.success
    assert "too large" in result.error


# ---------------------------------------------------------------------------
# Filetypes
# ---------------------------------------------------------------------------

def test_filetype_override(service, tmp_path):
    result = service.read_file(_write(tmp_path, "script", b"echo hi\n"), filetype="sh")
    assert result.content.filetype == "sh"


@pytest.mark.parametrize("name,filetype", [
    ("main.py", "python"),
    ("App.TSX", "tsx"),
    ("lib.rs", "rust"),
    ("style.scss", "scss"),
    ("README", ""),
    ("notes.md", ""),
])
def test_filetype_for_path(name, filetype):
    assert filetype_for_path(name) == filetype
