"""
Korean Amount Parsing

Deterministic reading of the amount expressions the classifier is told to
understand, used to coerce amounts that come back as strings:

    "만오천"        -> 15000
    "2만5천"        -> 25000
    "3만원"         -> 30000
    "1,500"         -> 1500
    "3.5k" / "15K"  -> 3500 / 15000
    "20,000+5,000"  -> 25000
    "사과 3개 2천원" -> 2000
    "점심"          -> None

Numbers are read left to right in sections: small units (십, 백, 천)
accumulate into the current section, large units (만, 억, 조) close the
section and scale it.

When a part holds several numbers, a run marked with a currency (원, $, ₩)
wins over one with a Korean unit, which wins over a bare count.
"""

import re
from typing import Optional, Union

Number = Union[int, float]

KOREAN_DIGITS = {
    "일": 1, "이": 2, "삼": 3, "사": 4, "오": 5,
    "육": 6, "칠": 7, "팔": 8, "구": 9,
}
SMALL_UNITS = {"십": 10, "백": 100, "천": 1000}
LARGE_UNITS = {"만": 10_000, "억": 100_000_000, "조": 1_000_000_000_000}

_NUMERAL_CHARS = "0-9" + "".join(KOREAN_DIGITS) + "".join(SMALL_UNITS) + "".join(LARGE_UNITS)

# A candidate amount: numerals, units, separators and a k suffix.
_RUN_RE = re.compile(rf"[{_NUMERAL_CHARS}.,kK]+")
_TOKEN_RE = re.compile(
    r"(?P<arabic>\d[\d,]*(?:\.\d+)?)(?P<kilo>[kK](?![a-zA-Z]))?"
    rf"|(?P<digit>[{''.join(KOREAN_DIGITS)}])"
    rf"|(?P<small>[{''.join(SMALL_UNITS)}])"
    rf"|(?P<large>[{''.join(LARGE_UNITS)}])"
)
# "2만 5천" is one amount; join numerals separated only by spaces.
_INNER_SPACE_RE = re.compile(rf"(?<=[{_NUMERAL_CHARS}])\s+(?=[{_NUMERAL_CHARS}])")
_CURRENCY_AFTER_RE = re.compile(r"\s*(?:원|달러|\$)")
_CURRENCY_BEFORE = ("₩", "$")


def _normalize(value: float) -> Number:
    return int(value) if float(value).is_integer() else value


def _has_unit(run: str) -> bool:
    return any(ch in SMALL_UNITS or ch in LARGE_UNITS for ch in run)


def _has_cue(run: str) -> bool:
    """A bare Korean digit ("오" in 오늘) is not an amount without a unit or arabic digit."""
    return any(ch.isdigit() for ch in run) or _has_unit(run)


def _read_run(run: str) -> Optional[float]:
    total = 0.0
    section = 0.0
    current: Optional[float] = None
    seen = False

    for match in _TOKEN_RE.finditer(run):
        if match.group("arabic"):
            current = float(match.group("arabic").replace(",", ""))
            if match.group("kilo"):
                current *= 1000
            seen = True
        elif match.group("digit"):
            current = float(KOREAN_DIGITS[match.group("digit")])
            seen = True
        elif match.group("small"):
            section += (current if current is not None else 1) * SMALL_UNITS[match.group("small")]
            current = None
            seen = True
        elif match.group("large"):
            section += current if current is not None else 0
            total += (section or 1) * LARGE_UNITS[match.group("large")]
            section = 0.0
            current = None
            seen = True

    if not seen:
        return None
    return total + section + (current or 0)


def _currency_marked(text: str, start: int, end: int) -> bool:
    return bool(_CURRENCY_AFTER_RE.match(text, end)) or text[:start].rstrip().endswith(_CURRENCY_BEFORE)


def _parse_single(text: str) -> Optional[float]:
    joined = _INNER_SPACE_RE.sub("", text)
    best: Optional[tuple[int, float]] = None
    for match in _RUN_RE.finditer(joined):
        run = match.group()
        if not _has_cue(run):
            continue
        value = _read_run(run)
        if value is None:
            continue
        if _currency_marked(joined, match.start(), match.end()):
            rank = 0
        elif _has_unit(run):
            rank = 1
        else:
            rank = 2
        # Earlier runs win ties
        if best is None or rank < best[0]:
            best = (rank, value)
    return best[1] if best is not None else None


def parse_korean_amount(text: Optional[str]) -> Optional[Number]:
    """
    Parse the amount expression in `text`.

    Parts joined with "+" are summed. Returns None when there is
    no numeric cue at all; never guesses a default.
    """
    if not text or not text.strip():
        return None

    parts = text.split("+") if "+" in text else [text]
    values = [v for v in (_parse_single(part) for part in parts) if v is not None]
    if not values:
        return None
    return _normalize(sum(values))
