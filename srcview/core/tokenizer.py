"""
Regex base tokenizer.

Provides:
- Language definitions as regex rules (python, javascript/typescript, css)
- Whole-buffer tokenizing into base spans
- Lookup of a language by filetype name

Tokenizing runs in two phases. Region rules (strings and comments) are
matched in one left-to-right pass of a combined pattern, earliest
match first, so a quote inside a
comment or a comment marker inside a string is never mistaken for the
start of another region. Token rules then run in order over what is
left; the first rule to claim a character keeps it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

from srcview.core.models import Span


@dataclass
class TokenRule:
    """A tokenizing rule: pattern and the base style it produces."""
    pattern: str
    style_id: str
    flags: int = 0
    group: int = 0  # Capture group to style

    _compiled: Optional[Pattern] = field(default=None, repr=False)

    def compile(self) -> Pattern:
        if self._compiled is None:
            self._compiled = re.compile(self.pattern, self.flags)
        return self._compiled


class LanguageDefinition:
    """Base class for language definitions."""

    name: str = "Unknown"
    filetypes: Tuple[str, ...] = ()

    region_rules: List[TokenRule] = []
    token_rules: List[TokenRule] = []

    # Compiled region alternation, built on first use per subclass
    _region_pattern: Optional[Pattern] = None


class PythonLanguage(LanguageDefinition):
    """Python language definition."""

    name = "Python"
    filetypes = ("python",)

    KEYWORDS = (
        r'\b(and|as|assert|async|await|break|class|continue|def|del|elif|else|'
        r'except|finally|for|from|global|if|import|in|is|lambda|nonlocal|not|'
        r'or|pass|raise|return|try|while|with|yield)\b'
    )

    CONSTANTS = r'\b(True|False|None|Ellipsis|NotImplemented)\b'

    BUILTINS = (
        r'\b(abs|all|any|bool|bytes|dict|enumerate|filter|float|frozenset|'
        r'getattr|hasattr|int|isinstance|iter|len|list|map|max|min|next|'
        r'object|open|print|range|repr|set|setattr|sorted|str|sum|super|'
        r'tuple|type|zip)\b'
    )

    region_rules = [
        TokenRule(r'[fFrRbBuU]?"""[\s\S]*?(?:"""|\Z)', "string"),
        TokenRule(r"[fFrRbBuU]?'''[\s\S]*?(?:'''|\Z)", "string"),
        TokenRule(r'#[^\n]*', "comment"),
        TokenRule(r'[fFrRbBuU]?"[^"\\\n]*(\\.[^"\\\n]*)*"', "string"),
        TokenRule(r"[fFrRbBuU]?'[^'\\\n]*(\\.[^'\\\n]*)*'", "string"),
    ]

    token_rules = [
        TokenRule(r'^[ \t]*(@[\w\.]+)', "decorator", re.MULTILINE, group=1),
        TokenRule(r'\b0[xX][0-9a-fA-F_]+\b', "number"),
        TokenRule(r'\b\d+\.?\d*([eE][+-]?\d+)?[jJ]?\b', "number"),
        TokenRule(r'\bdef\s+(\w+)', "function", group=1),
        TokenRule(r'\bclass\s+(\w+)', "type", group=1),
        TokenRule(KEYWORDS, "keyword"),
        TokenRule(CONSTANTS, "constant"),
        TokenRule(BUILTINS, "function"),
        TokenRule(r'\b(\w+)\s*\(', "function", group=1),
        TokenRule(r'\b(self|cls)\b', "variable"),
    ]


class JavaScriptLanguage(LanguageDefinition):
    """JavaScript/TypeScript language definition."""

    name = "JavaScript"
    filetypes = ("javascript", "typescript", "jsx", "tsx")

    KEYWORDS = (
        r'\b(async|await|break|case|catch|class|const|continue|debugger|default|'
        r'delete|do|else|export|extends|finally|for|function|if|import|in|'
        r'instanceof|let|new|of|return|static|super|switch|this|throw|try|'
        r'typeof|var|void|while|yield|enum|implements|interface|private|'
        r'protected|public|abstract|as|declare|from|type|readonly|keyof)\b'
    )

    CONSTANTS = r'\b(true|false|null|undefined|NaN|Infinity)\b'

    TYPES = (
        r'\b(any|boolean|never|number|object|string|symbol|unknown|bigint|'
        r'Array|Date|Error|Map|Promise|Record|Set)\b'
    )

    region_rules = [
        TokenRule(r'/\*[\s\S]*?(?:\*/|\Z)', "comment"),
        TokenRule(r'//[^\n]*', "comment"),
        TokenRule(r'`[^`\\]*(\\.[^`\\]*)*`', "string"),
        TokenRule(r'"[^"\\\n]*(\\.[^"\\\n]*)*"', "string"),
        TokenRule(r"'[^'\\\n]*(\\.[^'\\\n]*)*'", "string"),
    ]

    token_rules = [
        TokenRule(r'\b0[xX][0-9a-fA-F_]+n?\b', "number"),
        TokenRule(r'\b\d+\.?\d*([eE][+-]?\d+)?n?\b', "number"),
        TokenRule(r'@\w+', "decorator"),
        TokenRule(r'\bfunction\s+(\w+)', "function", group=1),
        TokenRule(r'\b(?:class|interface|type|enum)\s+(\w+)', "type", group=1),
        TokenRule(KEYWORDS, "keyword"),
        TokenRule(CONSTANTS, "constant"),
        TokenRule(TYPES, "type"),
        TokenRule(r'\b(\w+)\s*\(', "function", group=1),
        TokenRule(r'=>|===|!==|&&|\|\||\?\?', "operator"),
        TokenRule(r'\.(\w+)', "property", group=1),
    ]


class CssLanguage(LanguageDefinition):
    """CSS language definition."""

    name = "CSS"
    filetypes = ("css", "scss")

    region_rules = [
        TokenRule(r'/\*[\s\S]*?(?:\*/|\Z)', "comment"),
        TokenRule(r'(?<!:)//[^\n]*', "comment"),  # SCSS, not inside url(http://...)
        TokenRule(r'"[^"\n]*"', "string"),
        TokenRule(r"'[^'\n]*'", "string"),
    ]

    token_rules = [
        TokenRule(r'@[\w-]+', "keyword"),
        TokenRule(r'--[\w-]+|\$[\w-]+', "variable"),
        TokenRule(r'([\w-]+)\s*:(?!:)', "property", group=1),
        TokenRule(r'#[0-9a-fA-F]{3,8}\b', "constant"),
        TokenRule(r'[.#][\w-]+', "type"),
        TokenRule(r'\b\d+\.?\d*(px|em|rem|%|vh|vw|s|ms|deg)?', "number"),
        TokenRule(r'\b(rgb|rgba|hsl|hsla|calc|var|url)\s*\(', "function", group=1),
        TokenRule(r'!important', "keyword"),
    ]


class LanguageRegistry:
    """Registry of languages the base tokenizer knows."""

    _languages: Dict[str, type] = {}

    @classmethod
    def register_language(cls, language_class: type) -> None:
        for filetype in language_class.filetypes:
            cls._languages[filetype.lower()] = language_class

    @classmethod
    def get_language(cls, filetype: str) -> Optional[type]:
        return cls._languages.get(filetype.lower())

    @classmethod
    def get_all_filetypes(cls) -> List[str]:
        return list(cls._languages.keys())


for _language in (PythonLanguage, JavaScriptLanguage, CssLanguage):
    LanguageRegistry.register_language(_language)


def _match_range(rule: TokenRule, match: re.Match) -> Tuple[int, int]:
    group = rule.group if 0 < rule.group <= len(match.groups()) else 0
    return match.start(group), match.end(group)


def _region_pattern(language: type) -> Pattern:
    """All region rules of a language as one alternation, in rule order."""
    pattern = language.__dict__.get('_region_pattern')
    if pattern is None:
        alternatives = '|'.join(
            f'(?P<r{index}>{rule.pattern})' for index, rule in enumerate(language.region_rules)
        )
        flags = 0
        for rule in language.region_rules:
            flags |= rule.flags
        pattern = re.compile(alternatives, flags)
        language._region_pattern = pattern
    return pattern


def _scan_regions(content: str, language: type, claimed: bytearray) -> List[Span]:
    # Alternation picks the earliest start; ties go to the earlier rule
    spans: List[Span] = []
    rules = language.region_rules

    for match in _region_pattern(language).finditer(content):
        start, end = match.span()
        if end <= start:
            continue
        rule = rules[int(match.lastgroup[1:])]
        claimed[start:end] = b'\x01' * (end - start)
        spans.append(Span(start, end, rule.style_id))

    return spans


def tokenize(content: str, filetype: str) -> Tuple[Span, ...]:
    """
    Tokenize content into base spans sorted by start offset.

    Unknown filetypes produce no spans.
    """
    language = LanguageRegistry.get_language(filetype)
    if language is None or not content:
        return ()

    claimed = bytearray(len(content))
    spans = _scan_regions(content, language, claimed)

    for rule in language.token_rules:
        for match in rule.compile().finditer(content):
            start, end = _match_range(rule, match)
            if start < 0 or end <= start or any(claimed[start:end]):
                continue
            claimed[start:end] = b'\x01' * (end - start)
            spans.append(Span(start, end, rule.style_id))

    spans.sort(key=lambda span: span.start)
    return tuple(spans)
