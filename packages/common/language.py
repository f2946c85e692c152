"""
Language codes for the four catalog tables

Every catalog table (procedures, category recovery, keywords) exists once per
language. KR is the base table; EN, JP and CN are translations that share the
language-invariant group key with it.
"""
from enum import Enum
from typing import Optional, Union


class Language(str, Enum):
    """Catalog language"""
    KR = "KR"
    EN = "EN"
    JP = "JP"
    CN = "CN"


_ALIASES = {
    "US": Language.EN,
    "KO": Language.KR,
    "KOR": Language.KR,
    "JA": Language.JP,
    "JPN": Language.JP,
    "ZH": Language.CN,
    "CHN": Language.CN,
}


def normalize_language(value: Optional[Union[str, Language]]) -> Language:
    """
    Map any accepted language spelling to a Language.

    Unknown or empty values fall back to KR.

    Examples:
        "us" → EN, "ja" → JP, "KOR" → KR, None → KR
    """
    if isinstance(value, Language):
        return value

    code = (value or "").strip().upper()

    if code in _ALIASES:
        return _ALIASES[code]

    try:
        return Language(code)
    except ValueError:
        return Language.KR
