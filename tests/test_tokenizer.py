"""
Tests for the regex base tokenizer.
"""

import pytest

from srcview.core.tokenizer import (
    CssLanguage,
    JavaScriptLanguage,
    LanguageRegistry,
    PythonLanguage,
    tokenize,
)


def _tokens(content, filetype):
    return [(span.style_id, content[span.start:span.end]) for span in tokenize(content, filetype)]


def _of_style(content, filetype, style_id):
    return [text for style, text in _tokens(content, filetype) if style == style_id]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("filetype,language", [
    ("python", PythonLanguage),
    ("TypeScript", JavaScriptLanguage),
    ("jsx", JavaScriptLanguage),
    ("scss", CssLanguage),
])
def test_get_language(filetype, language):
    assert LanguageRegistry.get_language(filetype) is language


def test_unknown_filetype_yields_no_spans():
    assert LanguageRegistry.get_language("cobol") is None
    assert tokenize("x = 1", "cobol") == ()
    assert tokenize("", "python") == ()


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("filetype", ["python", "javascript", "css"])
def test_spans_sorted_and_disjoint(filetype, python_source):
    spans = tokenize(python_source, filetype)
    for before, after in zip(spans, spans[1:]):
        assert before.end <= after.start


# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------

def test_python_definitions():
    content = "def greet(name):\n    return None"
    assert _tokens(content, "python") == [
        ("keyword", "def"),
        ("function", "greet"),
        ("keyword", "return"),
        ("constant", "None"),
    ]


def test_python_comment_marker_inside_string():
    content = 's = "# not a comment"  # real'
    assert _of_style(content, "python", "string") == ['"# not a comment"']
    assert _of_style(content, "python", "comment") == ["# real"]


def test_python_quote_inside_comment():
    content = "# it's fine\nx = 'a'"
    assert _of_style(content, "python", "comment") == ["# it's fine"]
    assert _of_style(content, "python", "string") == ["'a'"]


def test_python_triple_quoted_string():
    content = '"""doc # x\nmore"""\nclass Foo:\n    pass'
    assert _of_style(content, "python", "string") == ['"""doc # x\nmore"""']
    assert _of_style(content, "python", "type") == ["Foo"]
    assert _of_style(content, "python", "comment") == []


def test_python_decorator_and_numbers():
    content = "@property\ndef f(self):\n    return 0x1F + 2.5e3"
    assert _of_style(content, "python", "decorator") == ["@property"]
    assert _of_style(content, "python", "number") == ["0x1F", "2.5e3"]
    assert _of_style(content, "python", "variable") == ["self"]


def test_python_keyword_inside_identifier_is_not_claimed():
    assert _of_style("format = iffy", "python", "keyword") == []


# ---------------------------------------------------------------------------
# JavaScript
# ---------------------------------------------------------------------------

def test_javascript_template_string_with_comment_marker():
    content = "const x = `a // b`; // c"
    assert _of_style(content, "javascript", "string") == ["`a // b`"]
    assert _of_style(content, "javascript", "comment") == ["// c"]
    assert _of_style(content, "javascript", "keyword") == ["const"]


def test_javascript_block_comment_spans_lines():
    content = "/* a\n'b' */ let y = null"
    assert _of_style(content, "javascript", "comment") == ["/* a\n'b' */"]
    assert _of_style(content, "javascript", "string") == []
    assert _of_style(content, "javascript", "constant") == ["null"]


def test_typescript_types_and_arrow():
    content = "interface Props { id: number }\nconst f = () => 1"
    assert _of_style(content, "typescript", "type") == ["Props", "number"]
    assert _of_style(content, "typescript", "operator") == ["=>"]


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

def test_css_rule():
    content = "a { color: #fff; } /* c */"
    assert _of_style(content, "css", "property") == ["color"]
    assert _of_style(content, "css", "constant") == ["#fff"]
    assert _of_style(content, "css", "comment") == ["/* c */"]


def test_scss_line_comment_not_inside_url():
    content = "b { background: url(http://x.org/a.png); } // note"
    assert _of_style(content, "scss", "comment") == ["// note"]


# ---------------------------------------------------------------------------
# Large buffers
# ---------------------------------------------------------------------------

def test_many_regions_in_one_buffer():
    content = 'x = "abc"  # note\n' * 8000
    tokens = _tokens(content, "python")

    assert [text for style, text in tokens if style == "string"] == ['"abc"'] * 8000
    assert [text for style, text in tokens if style == "comment"] == ["# note"] * 8000


def test_earlier_region_rule_wins_at_same_start():
    content = "'''a' b'''\nc = 'd'"
    assert _of_style(content, "python", "string") == ["'''a' b'''", "'d'"]


def test_unterminated_block_comment_runs_to_end():
    content = "x /* open\n'y'"
    assert _of_style(content, "javascript", "comment") == ["/* open\n'y'"]
    assert _of_style(content, "javascript", "string") == []
