"""
Tests for the command line entry point.
"""

import io
import json
import logging
import sys

import pytest

from main import (
    CommandLineArgs,
    apply_overrides,
    create_session,
    jump_to_requested_line,
    main,
    parse_arguments,
    print_stats,
)
from srcview.core.models import BlameMode
from srcview.core.session import ViewerSession
from srcview.services.settings import ApplicationSettings
from srcview.ui.source_view import SourceViewWindow


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------

def test_parse_arguments():
    args = parse_arguments([
        "app.py", "--blame", "--disable", "lint", "--disable", "colors",
        "--blame-mode", "both", "--line", "3", "--search", "user",
    ])

    assert args.path == "app.py"
    assert args.blame
    assert args.disabled == ["lint", "colors"]
    assert args.blame_mode is BlameMode.BOTH
    assert args.line == 3
    assert args.search == "user"
    assert args.log_level == "WARNING"


def test_verbose_sets_debug():
    assert parse_arguments(["-v"]).log_level == "DEBUG"


def test_stats_needs_a_path():
    with pytest.raises(SystemExit):
        parse_arguments(["--stats"])


def test_blame_sources_are_exclusive():
    with pytest.raises(SystemExit):
        parse_arguments(["a.py", "--blame", "--blame-file", "blame.json"])


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

def test_apply_overrides():
    args = CommandLineArgs(disabled=["lint"], blame_mode=BlameMode.OFF, sheet="Default Light")
    settings = apply_overrides(ApplicationSettings(), args)

    assert settings.annotators.lint_enabled is False
    assert settings.annotators.brackets_enabled is True
    assert settings.annotators.blame_mode is BlameMode.OFF
    assert settings.ui.style_sheet == "Default Light"
    assert settings.ui.background == "#FFFFFF"


def test_create_session_uses_sheet():
    settings = ApplicationSettings()
    settings.ui.style_sheet = "Default Light"
    session = create_session(settings)

    assert session.registry.get("keyword").foreground == "#0000C8"


# ---------------------------------------------------------------------------
# Startup line
# ---------------------------------------------------------------------------

@pytest.fixture
def window(qapp, clock):
    window = SourceViewWindow(ViewerSession(clock=clock))
    window.set_content("a\nb\nc", "python")
    yield window
    window.controller.wait(5000)
    window.close()


def test_requested_line_in_range(window):
    assert jump_to_requested_line(window, 2)
    assert window.session.focused_line == 1


@pytest.mark.parametrize("line", [0, 99999])
def test_requested_line_out_of_range_is_skipped(window, line, caplog):
    with caplog.at_level(logging.WARNING):
        assert jump_to_requested_line(window, line) is False

    assert window.session.focused_line is None
    assert f"--line {line} ignored" in caplog.text


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def test_print_stats(attribution_records, python_source):
    session = create_session(ApplicationSettings())
    session.set_content(python_source, "python")
    session.set_attribution(attribution_records)
    out = io.StringIO()

    print_stats(session, out)

    text = out.getvalue()
    assert "Brackets: 6 pair(s), max depth 2\n" in text
    assert "  TODO: 1\n" in text
    assert "  FIXME: 0\n" in text
    assert "Blame: 6 attributed line(s)\n" in text
    assert "  alice: 4\n" in text


@pytest.fixture
def restore_process_state(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_main_stats(tmp_path, capfd, restore_process_state):
    source = tmp_path / "app.py"
    source.write_text("# TODO: x\nf([1])\n", encoding="utf-8")
    blame = tmp_path / "blame.json"
    blame.write_text(json.dumps([
        {"line_start": 0, "line_end": 2, "author": "alice", "timestamp": "2024-01-02T03:04:05"},
    ]), encoding="utf-8")

    code = main([
        str(source), "--stats", "--blame-file", str(blame), "--search", "f",
        "-c", str(tmp_path / "settings.json"),
    ])

    out = capfd.readouterr().out
    assert code == 0
    assert "Brackets: 2 pair(s), max depth 1" in out
    assert "  TODO: 1" in out
    assert "  alice: 2" in out
    assert "Found 1 match" in out


def test_main_stats_missing_file(tmp_path, restore_process_state):
    code = main([str(tmp_path / "missing.py"), "--stats", "-c", str(tmp_path / "settings.json")])
    assert code == 1
