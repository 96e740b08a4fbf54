"""
Color literal extraction and blending.

Finds hex color codes (#RGB, #RGBA, #RRGGBB, #RRGGBBAA) in text and
turns each distinct literal into a swatch style: the literal's own
color (alpha-blended over the viewer background) as background, with
black or white text picked by luminance.
"""

from __future__ import annotations

import logging
import math
import re
from typing import List, Set

from srcview.core.models import RGB, RGBA, ColorMatch, StyleDefinition


COLOR_PATTERN = re.compile(r'#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})\b')

BLACK = RGB(0, 0, 0)
WHITE = RGB(255, 255, 255)


def extract_colors(text: str) -> List[ColorMatch]:
    """Find all hex color literals in text, in order of appearance."""
    return [
        ColorMatch(start=match.start(), end=match.end(), raw_literal=match.group())
        for match in COLOR_PATTERN.finditer(text)
    ]


def decode_color(literal: str) -> RGBA:
    """
    Decode a hex literal to RGBA.

    Short forms are digit-doubled. Alpha is present only for the 4 and 8
    digit forms and is returned in [0, 1].

    Raises:
        ValueError: If the literal is not 3, 4, 6 or 8 hex digits
    """
    digits = literal.lstrip('#')
    if len(digits) not in (3, 4, 6, 8) or not re.fullmatch(r'[0-9a-fA-F]+', digits):
        raise ValueError(f"Not a hex color literal: {literal!r}")

    has_alpha = len(digits) in (4, 8)
    expanded = ''.join(c + c for c in digits) if len(digits) <= 4 else digits

    r = int(expanded[0:2], 16)
    g = int(expanded[2:4], 16)
    b = int(expanded[4:6], 16)
    a = int(expanded[6:8], 16) / 255 if has_alpha else 1.0
    return RGBA(r, g, b, a)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def blend(fg: RGBA, bg: RGB) -> RGB:
    """Alpha-composite fg over an opaque background."""
    return RGB(
        _round_half_up(fg.r * fg.a + bg.r * (1 - fg.a)),
        _round_half_up(fg.g * fg.a + bg.g * (1 - fg.a)),
        _round_half_up(fg.b * fg.a + bg.b * (1 - fg.a)),
    )


def luminance(color: RGB) -> float:
    """Perceptual luminance in [0, 1]."""
    return (0.299 * color.r + 0.587 * color.g + 0.114 * color.b) / 255


def contrast_color(color: RGB) -> RGB:
    """Black on light colors, white on dark ones."""
    return BLACK if luminance(color) > 0.5 else WHITE


def parse_rgb(literal: str) -> RGB:
    """Parse an opaque '#rrggbb' (or short) literal, ignoring any alpha."""
    return decode_color(literal).rgb


def color_style_id(match: ColorMatch) -> str:
    return f"color.{match.normalized}"


def swatch_style(literal: str, background: RGB) -> StyleDefinition:
    """Style showing the literal's color as background with readable text."""
    blended = blend(decode_color(literal), background)
    return StyleDefinition(
        foreground=contrast_color(blended).to_hex(),
        background=blended.to_hex(),
    )


def register_color_styles(registry, content: str, background: RGB) -> int:
    """
    Register one swatch style per distinct color literal in content.

    Must run before the color annotator scans this content version.

    Returns:
        Number of styles registered
    """
    registered: Set[str] = set()

    for match in extract_colors(content):
        style_id = color_style_id(match)
        if style_id in registered:
            continue
        try:
            style = swatch_style(match.raw_literal, background)
        except ValueError as e:
            logging.warning(f"ColorStyles - Skipping literal {match.raw_literal}: {e}")
            continue
        registry.register(style_id, style)
        registered.add(style_id)

    logging.debug(f"ColorStyles - Registered {len(registered)} swatch style(s)")
    return len(registered)
