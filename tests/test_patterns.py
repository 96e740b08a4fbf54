"""
Tests for keyword flags and literal search.
"""

from srcview.core.models import PatternDefinition
from srcview.core.patterns import (
    DEFAULT_LINT_PATTERNS,
    NO_SELECTION,
    SEARCH_CURRENT_STYLE,
    SEARCH_MATCH_STYLE,
    SearchState,
    count_keywords,
    find_keywords,
    find_matches,
)


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

def test_find_keywords_case_insensitive_and_word_bounded():
    content = "# todo: x\n# FIXME later\nTODOS and xTODO"
    matches = find_keywords(content, DEFAULT_LINT_PATTERNS)

    assert [(m.start, m.end, m.keyword, m.style_id, m.line) for m in matches] == [
        (2, 6, "TODO", "lint.todo", 0),
        (12, 17, "FIXME", "lint.fixme", 1),
    ]


def test_find_keywords_line_numbers_in_long_buffer():
    content = "x = 1\n" * 3000 + "# TODO last\n"
    matches = find_keywords(content, DEFAULT_LINT_PATTERNS)
    assert [(m.keyword, m.line) for m in matches] == [("TODO", 3000)]


def test_find_keywords_sorted_across_patterns():
    matches = find_keywords("NOTE: HACK then TODO", DEFAULT_LINT_PATTERNS)
    assert [m.keyword for m in matches] == ["NOTE", "HACK", "TODO"]


def test_find_keywords_custom_pattern():
    patterns = [PatternDefinition("REVIEW", "lint.review")]
    matches = find_keywords("# review me", patterns)
    assert [(m.start, m.keyword) for m in matches] == [(2, "REVIEW")]


def test_count_keywords():
    counts = count_keywords("TODO TODO fixme", DEFAULT_LINT_PATTERNS)
    assert counts == {
        "TODO": 2, "FIXME": 1, "HACK": 0, "NOTE": 0, "XXX": 0, "DEPRECATED": 0,
    }


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def test_find_matches_positions():
    matches = find_matches("user user", "user")
    assert [(m.start, m.end) for m in matches] == [(0, 4), (5, 9)]


def test_find_matches_overlapping():
    assert [m.start for m in find_matches("aaa", "aa")] == [0, 1]


def test_find_matches_case_insensitive():
    assert len(find_matches("User USER uSeR", "user")) == 3


def test_find_matches_literal_term():
    assert [m.start for m in find_matches("a.b axb", "a.b")] == [0]


def test_find_matches_line_and_column():
    match = find_matches("a\nbcx", "x")[0]
    assert (match.line, match.column) == (1, 2)


def test_find_matches_lines_across_large_buffer():
    text = "key = value\n" * 5000
    matches = find_matches(text, "e")

    assert len(matches) == 5000 * 2
    assert [(m.line, m.column) for m in matches[-2:]] == [(4999, 1), (4999, 10)]
    assert [(m.line, m.column) for m in matches[:3]] == [(0, 1), (0, 10), (1, 1)]


def test_match_at_line_start_and_on_newline():
    matches = find_matches("ab\nab\n", "\na")
    assert [(m.start, m.line, m.column) for m in matches] == [(2, 0, 2)]
    assert [(m.line, m.column) for m in find_matches("x\nab", "a")] == [(1, 0)]


def test_find_matches_empty_term():
    assert find_matches("anything", "") == []


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def test_for_term_selects_first_match():
    state = SearchState.for_term("user user", "user")
    assert state.current_index == 0
    assert state.current_match.start == 0


def test_next_and_prev_wrap():
    state = SearchState.for_term("user user", "user")

    state = state.next()
    assert state.current_index == 1
    state = state.next()
    assert state.current_index == 0
    state = state.prev()
    assert state.current_index == 1


def test_jump_to_wraps_negative_index():
    state = SearchState.for_term("a a a", "a")
    assert state.jump_to(-1).current_index == 2
    assert state.jump_to(4).current_index == 1


def test_navigation_without_matches_is_noop():
    state = SearchState.for_term("abc", "z")
    assert state.current_index == NO_SELECTION
    assert state.next() == state
    assert state.current_match is None
    assert state.scroll_target() is None


def test_style_for_marks_current_match():
    state = SearchState.for_term("x x", "x").next()
    assert state.style_for(0) == SEARCH_MATCH_STYLE
    assert state.style_for(1) == SEARCH_CURRENT_STYLE


def test_scroll_target_keeps_context():
    text = "\n".join(["line"] * 5 + ["needle"])
    state = SearchState.for_term(text, "needle")
    assert state.scroll_target(3) == 2
    assert SearchState.for_term("needle", "needle").scroll_target(3) == 0


def test_summary():
    assert SearchState().summary() == "/ or Enter: search | n/N: next/prev match"
    assert SearchState.for_term("abc", "z").summary() == 'No matches found for "z"'
    assert SearchState.for_term("user\nuser", "user").next().summary() == (
        "Found 2 matches | Current: 2/2 (line 2)"
    )
    assert SearchState.for_term("one", "one").summary() == (
        "Found 1 match | Current: 1/1 (line 1)"
    )
