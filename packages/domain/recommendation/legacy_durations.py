"""
Per-item legacy duration parsing

Procedure rows predate the category recovery table and carry free-text
durations: downtime as "1일", "1-2일", "2~3 days" or a plain number, surgery
time as "30분" or minutes. Only the first integer is used. A value of 0, or
text with no digits, is "unknown" and returned as None.
"""
import math
import re
from typing import Optional, Union

import structlog

logger = structlog.get_logger()

_FIRST_INT_RE = re.compile(r"(\d+)")


def _parse_first_int(value: Optional[Union[int, float, str]], field: str) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        number = int(value)
        return number if number > 0 else None

    text = str(value).strip()
    if not text:
        return None

    match = _FIRST_INT_RE.search(text)
    if not match:
        logger.debug("legacy_duration_unparseable", field=field, value=text)
        return None

    number = int(match.group(1))
    return number if number > 0 else None


def parse_day_count(value: Optional[Union[int, float, str]]) -> Optional[int]:
    """
    Parse a legacy recovery period into days.

    Examples:
        "1일" → 1, "2~3일" → 2, 4 → 4, "0일" → None, "상담 후 결정" → None
    """
    return _parse_first_int(value, "recovery")


def parse_minutes(value: Optional[Union[int, float, str]]) -> Optional[int]:
    """
    Parse a legacy procedure time into minutes.

    Examples:
        "30분" → 30, 60 → 60, "" → None
    """
    return _parse_first_int(value, "procedure_time")
