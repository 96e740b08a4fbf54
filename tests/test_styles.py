"""
Tests for the style registry and style sheets.
"""

import pytest
from PyQt6.QtCore import Qt

from srcview.core.models import AgeBucket, StyleDefinition
from srcview.core.styles import (
    SealedRegistryError,
    StyleConflictError,
    StyleRegistry,
    StyleSheets,
    UnknownStyleError,
    age_style_id,
    get_available_sheets,
    get_sheet_by_name,
)


RED = StyleDefinition(foreground="#ff0000")
BLUE = StyleDefinition(foreground="#0000ff")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_identical_registration_is_noop():
    registry = StyleRegistry()
    registry.register("x", RED)
    registry.register("x", RED)
    assert len(registry) == 1


def test_conflicting_registration_raises():
    registry = StyleRegistry({"x": RED})
    with pytest.raises(StyleConflictError):
        registry.register("x", BLUE)


def test_seal_blocks_versioned_styles_only():
    registry = StyleRegistry()
    registry.begin_version("v1")
    registry.seal()

    with pytest.raises(SealedRegistryError):
        registry.register("color.fff", RED)

    registry.register("blame.author.alice", BLUE, static=True)
    assert "blame.author.alice" in registry


def test_begin_version_resets_versioned_styles():
    registry = StyleRegistry({"keyword": RED})

    assert registry.begin_version("v1") is True
    registry.register("color.fff", BLUE)
    registry.seal()

    assert registry.begin_version("v1") is False
    assert registry.sealed
    assert "color.fff" in registry

    assert registry.begin_version("v2") is True
    assert not registry.sealed
    assert "color.fff" not in registry
    assert "keyword" in registry


def test_require_unknown_raises():
    registry = StyleRegistry()
    with pytest.raises(UnknownStyleError) as excinfo:
        registry.require("nope")
    assert excinfo.value.style_id == "nope"
    assert isinstance(excinfo.value, KeyError)


def test_iteration_lists_static_then_versioned():
    registry = StyleRegistry({"a": RED})
    registry.begin_version("v1")
    registry.register("b", BLUE)
    assert list(registry) == ["a", "b"]


def test_snapshot_is_independent():
    registry = StyleRegistry({"a": RED})
    registry.begin_version("v1")
    registry.register("b", BLUE)
    registry.seal()

    copy = registry.snapshot()
    registry.register("c", RED, static=True)
    registry.begin_version("v2")

    assert "c" not in copy
    assert "b" in copy
    assert copy.version == "v1"
    assert copy.sealed


# ---------------------------------------------------------------------------
# Qt formats
# ---------------------------------------------------------------------------

def test_char_format(qapp):
    registry = StyleRegistry(StyleSheets.github_dark())

    keyword = registry.char_format("keyword")
    assert keyword.foreground().color().name() == "#ff7b72"

    comment = registry.char_format("comment")
    assert comment.fontItalic()
    assert registry.char_format("comment") is comment


def test_char_format_only_sets_given_attributes(qapp):
    registry = StyleRegistry(StyleSheets.github_dark())
    fmt = registry.char_format("blame.old")
    assert fmt.background().color().name() == "#3d2b1a"
    assert fmt.foreground().style() == Qt.BrushStyle.NoBrush


def test_char_format_unknown_style(qapp):
    with pytest.raises(UnknownStyleError):
        StyleRegistry().char_format("missing")


# ---------------------------------------------------------------------------
# Sheets
# ---------------------------------------------------------------------------

def test_sheets_define_the_same_ids():
    assert set(StyleSheets.github_dark()) == set(StyleSheets.default_light())


def test_sheets_cover_every_age_bucket():
    sheet = StyleSheets.github_dark()
    for bucket in AgeBucket:
        assert age_style_id(bucket) in sheet


def test_get_sheet_by_name_falls_back():
    assert get_available_sheets() == ["GitHub Dark", "Default Light"]
    assert get_sheet_by_name("Default Light") == StyleSheets.default_light()
    assert get_sheet_by_name("missing") == StyleSheets.github_dark()
