"""
Tests for attribution sources: git porcelain parsing and JSON files.
"""

import json
from datetime import datetime

from srcview.services.blame_source import (
    GitBlameService,
    load_json_records,
    parse_line_porcelain,
    record_from_dict,
)


SHA_A = "a1b2c3d4" + "0" * 32
SHA_B = "e5f6a7b8" + "1" * 32


def _porcelain(sha, final_line, author, author_time, summary, text):
    return (
        f"{sha} {final_line} {final_line} 1\n"
        f"author {author}\n"
        f"author-mail <{author}@example.com>\n"
        f"author-time {author_time}\n"
        f"author-tz +0000\n"
        f"committer {author}\n"
        f"committer-time {author_time}\n"
        f"summary {summary}\n"
        f"filename app.py\n"
        f"\t{text}\n"
    )


PORCELAIN = (
    _porcelain(SHA_A, 1, "alice", 1700000000, "Initial commit", "def f():")
    + _porcelain(SHA_A, 2, "alice", 1700000000, "Initial commit", "    return 1")
    + _porcelain(SHA_B, 3, "bob", 1710000000, "Add g", "def g():")
    + _porcelain(SHA_A, 4, "alice", 1700000000, "Initial commit", "    author x")
)


# ---------------------------------------------------------------------------
# Porcelain
# ---------------------------------------------------------------------------

def test_parse_line_porcelain_coalesces_consecutive_lines():
    records = parse_line_porcelain(PORCELAIN)

    assert [(r.line_start, r.line_end, r.author) for r in records] == [
        (0, 2, "alice"),
        (2, 3, "bob"),
        (3, 4, "alice"),
    ]
    assert records[0].identifier == "a1b2c3d4"
    assert records[0].message == "Initial commit"
    assert records[1].timestamp == datetime.fromtimestamp(1710000000)


def test_parse_line_porcelain_ignores_garbage():
    assert parse_line_porcelain("") == []
    assert parse_line_porcelain("fatal: not a git repository\n") == []


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def test_record_from_dict_iso_and_epoch():
    record = record_from_dict({
        "line_start": 0, "line_end": 2, "author": "alice",
        "timestamp": "2024-01-02T03:04:05", "identifier": "abc", "message": "m",
    })
    assert record.timestamp == datetime(2024, 1, 2, 3, 4, 5)
    assert (record.line_start, record.line_end) == (0, 2)

    epoch = record_from_dict({"line_start": 1, "line_end": 2, "timestamp": 0})
    assert epoch.timestamp == datetime.fromtimestamp(0)
    assert epoch.author == ""


def test_record_from_dict_converts_aware_timestamps():
    record = record_from_dict({"line_start": 0, "line_end": 1, "timestamp": "2024-01-02T03:04:05+00:00"})
    assert record.timestamp.tzinfo is None


def test_load_json_records_skips_bad_entries(tmp_path):
    path = tmp_path / "blame.json"
    path.write_text(json.dumps([
        {"line_start": 0, "line_end": 2, "author": "alice", "timestamp": "2024-01-02T03:04:05"},
        {"line_start": 2},
        {"line_start": 2, "line_end": 3, "author": "bob", "timestamp": "not a date"},
    ]), encoding="utf-8")

    result = load_json_records(path)

    assert result.success
    assert [record.author for record in result.records] == ["alice"]


def test_load_json_records_failures(tmp_path):
    assert not load_json_records(tmp_path / "missing.json").success

    invalid = tmp_path / "invalid.json"
    invalid.write_text("[", encoding="utf-8")
    assert load_json_records(invalid).error.startswith("Invalid JSON")

    not_list = tmp_path / "object.json"
    not_list.write_text("{}", encoding="utf-8")
    assert not load_json_records(not_list).success


# ---------------------------------------------------------------------------
# git
# ---------------------------------------------------------------------------

def test_git_blame_missing_executable(tmp_path):
    path = tmp_path / "a.py"
    path.write_text("x = 1\n", encoding="utf-8")

    result = GitBlameService(git_executable="srcview-no-such-git").blame_file(path)

    assert not result.success
    assert result.error
