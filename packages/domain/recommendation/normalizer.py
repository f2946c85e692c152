"""
Taxonomy label normalization

Comparison key for category labels and keywords. Never used for display.
"""
import re
import unicodedata
from typing import Optional

# Zero-width and invisible characters not covered by whitespace removal
_INVISIBLE_CHARS = frozenset(chr(code) for code in (
    0x00AD,  # soft hyphen
    0x034F,  # combining grapheme joiner
    0x180E,  # mongolian vowel separator
    0x200B,  # zero width space
    0x200C,  # zero width non-joiner
    0x200D,  # zero width joiner
    0x2060,  # word joiner
    0xFEFF,  # byte order mark
))

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_label(value: Optional[str]) -> str:
    """
    Canonicalize a label for matching.

    NFC composition, invisible characters stripped, all whitespace removed,
    lowercased. Idempotent.

    Examples:
        "Eye Surgery" → "eyesurgery"
        "A b<ZWNJ>c" → "abc"
    """
    if not value:
        return ""

    composed = unicodedata.normalize("NFC", value)
    visible = "".join(
        ch for ch in composed
        if ch not in _INVISIBLE_CHARS and unicodedata.category(ch) != "Cf"
    )
    return unicodedata.normalize("NFC", _WHITESPACE_RE.sub("", visible).lower())
