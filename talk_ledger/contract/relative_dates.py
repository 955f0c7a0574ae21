"""
Relative Date Resolution

Resolves the Korean date expressions the classifier is told to handle
against an explicit anchor date. The anchor is always passed in; this
module never reads the clock.

    resolve_relative_date("어제", date(2024, 5, 10))  -> date(2024, 5, 9)
"""

import re
from datetime import date, timedelta
from typing import Optional

WEEKDAYS = "월화수목금토일"

_ISO_RE = re.compile(r"(\d{4})[-./](\d{1,2})[-./](\d{1,2})")
_MONTH_DAY_RE = re.compile(r"(\d{1,2})\s*월\s*(\d{1,2})\s*일")
_WEEKDAY_RE = re.compile(
    rf"(?P<week>이번\s*주|금주|지난\s*주|저번\s*주|전\s*주|다음\s*주)?\s*(?P<day>[{WEEKDAYS}])요일"
)
_DAYS_OFFSET_RE = re.compile(r"(\d+)\s*일\s*(전|후|뒤)")
_NATIVE_DAYS_RE = re.compile(r"(이틀|사흘|나흘|닷새|엿새|이레|열흘)\s*(전|후|뒤)")

NATIVE_DAY_COUNTS = {
    "이틀": 2, "사흘": 3, "나흘": 4, "닷새": 5,
    "엿새": 6, "이레": 7, "열흘": 10,
}

# Checked in order: longer words first so 그저께 is not read as 어제.
DAY_WORDS = [
    ("그저께", -2),
    ("엊그제", -2),
    ("그제", -2),
    ("어저께", -1),
    ("어제", -1),
    ("오늘", 0),
    ("금일", 0),
    ("내일", 1),
    ("모레", 2),
]

WEEK_SHIFTS = {
    "이번주": 0, "금주": 0,
    "지난주": -1, "저번주": -1, "전주": -1,
    "다음주": 1,
}


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _weekday_date(week: Optional[str], day: str, today: date) -> date:
    target = WEEKDAYS.index(day)
    if week is None:
        # Bare weekday: its most recent occurrence, today included.
        return today - timedelta(days=(today.weekday() - target) % 7)
    shift = WEEK_SHIFTS[week.replace(" ", "")]
    monday = today - timedelta(days=today.weekday())
    return monday + timedelta(weeks=shift, days=target)


def resolve_relative_date(text: Optional[str], today: date) -> Optional[date]:
    """
    Resolve the first date expression in `text` against `today`.

    Handles ISO-like dates, "5월 3일", weekdays with an optional
    이번 주 / 지난주 / 다음 주 qualifier, "N일 전/후", native day counts
    (이틀 전) and the single words 오늘, 어제, 그제, 내일, 모레.
    Returns None when there is no date cue.
    """
    if not text or not text.strip():
        return None

    match = _ISO_RE.search(text)
    if match:
        return _safe_date(*(int(g) for g in match.groups()))

    match = _MONTH_DAY_RE.search(text)
    if match:
        return _safe_date(today.year, int(match.group(1)), int(match.group(2)))

    match = _WEEKDAY_RE.search(text)
    if match:
        return _weekday_date(match.group("week"), match.group("day"), today)

    match = _DAYS_OFFSET_RE.search(text)
    if match:
        days = int(match.group(1))
        return today - timedelta(days=days) if match.group(2) == "전" else today + timedelta(days=days)

    match = _NATIVE_DAYS_RE.search(text)
    if match:
        days = NATIVE_DAY_COUNTS[match.group(1)]
        return today - timedelta(days=days) if match.group(2) == "전" else today + timedelta(days=days)

    for word, offset in DAY_WORDS:
        if word in text:
            return today + timedelta(days=offset)

    return None
