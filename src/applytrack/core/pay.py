"""Pay-string normalization to an hourly rate.

Best-effort heuristic used to rank rows, not a validated conversion:

- currency symbols/codes and thousands separators are stripped
- `k` shorthand is expanded (`80k` -> 80000); in a range like `120-150k` the
  suffix on the upper bound also applies to the lower one
- the first number is taken; when a range separator (`-`, `to`) joins it to a
  second number the two are averaged
- the earliest unit keyword picks the basis (hour, day, week, month, year);
  without one, amounts above 1000 are treated as annual and everything else
  as hourly
"""

from __future__ import annotations

import re
from typing import Any

ANNUAL_HOURS = 2080
MONTHS_PER_YEAR = 12
HOURS_PER_DAY = 8
HOURS_PER_WEEK = 40
ANNUAL_THRESHOLD = 1000

_CURRENCY_PATTERN = re.compile(r"[$€£¥₹]|\b(?:usd|cad|aud|eur|gbp|inr)\b", re.IGNORECASE)
_AMOUNT_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(k\b)?(?:\s*(?:-|\u2013|\u2014|to)\s*(\d+(?:\.\d+)?)\s*(k\b)?)?",
    re.IGNORECASE,
)

_HOUR_PATTERN = re.compile(r"\b(?:hour|hours|hourly|hr|hrs)\b|/\s*h\b", re.IGNORECASE)
_DAY_PATTERN = re.compile(r"\b(?:day|days|daily)\b", re.IGNORECASE)
_WEEK_PATTERN = re.compile(r"\b(?:week|weeks|weekly|wk)\b", re.IGNORECASE)
_MONTH_PATTERN = re.compile(r"\b(?:month|months|monthly|mo|mth)\b", re.IGNORECASE)
_YEAR_PATTERN = re.compile(r"\b(?:year|years|yearly|yr|yrs|annual|annually|annum)\b", re.IGNORECASE)

_UNIT_TEXT = {
    "HOUR": "per hour",
    "DAY": "per day",
    "WEEK": "per week",
    "MONTH": "per month",
    "YEAR": "per year",
}


def _format_amount(value: Any) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(int(value)) if float(value).is_integer() else f"{value:.2f}"
    return str(value).strip() if value is not None else ""


def format_pay(raw: Any) -> str:
    """Flatten a pay value from the search API into a display string.

    Accepts plain strings, lists of strings and schema.org `MonetaryAmount`
    objects (`{"currency": ..., "value": {"minValue", "maxValue", "unitText"}}`).
    """
    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, str):
        return raw.strip()
    if isinstance(raw, (int, float)):
        return _format_amount(raw)
    if isinstance(raw, list):
        parts = [format_pay(item) for item in raw]
        return "; ".join(part for part in parts if part)
    if not isinstance(raw, dict):
        return str(raw).strip()

    currency = str(raw.get("currency") or "").strip()
    value = raw.get("value")
    if not isinstance(value, dict):
        value = raw
    low = value.get("minValue", value.get("min"))
    high = value.get("maxValue", value.get("max"))
    single = value.get("value")
    unit = str(value.get("unitText") or raw.get("unitText") or "").strip().upper()

    if low is not None and high is not None and _format_amount(low) != _format_amount(high):
        amount = f"{_format_amount(low)}-{_format_amount(high)}"
    else:
        amount = _format_amount(low if low is not None else high if high is not None else single)
    if not amount:
        return ""

    pieces = [currency, amount, _UNIT_TEXT.get(unit, unit.lower())]
    return " ".join(piece for piece in pieces if piece)


_UNIT_PATTERNS = (
    ("hour", _HOUR_PATTERN),
    ("day", _DAY_PATTERN),
    ("week", _WEEK_PATTERN),
    ("month", _MONTH_PATTERN),
    ("year", _YEAR_PATTERN),
)


def _pay_unit(text: str) -> str | None:
    """Unit of the earliest unit keyword, so `$100,000 a year, 40 hours/week` is annual."""
    found: list[tuple[int, str]] = []
    for unit, pattern in _UNIT_PATTERNS:
        match = pattern.search(text)
        if match is not None:
            found.append((match.start(), unit))
    return min(found)[1] if found else None


def extract_amount(pay_text: str) -> float | None:
    """Return the single amount (or range midpoint) in a pay string."""
    cleaned = _CURRENCY_PATTERN.sub(" ", pay_text).replace(",", "")
    match = _AMOUNT_PATTERN.search(cleaned)
    if match is None:
        return None
    low_text, low_k, high_text, high_k = match.groups()
    low = float(low_text) * (1000 if low_k or high_k else 1)
    if high_text is None:
        return low
    high = float(high_text) * (1000 if high_k else 1)
    return (low + high) / 2


def hourly_rate(raw: Any) -> float | None:
    """Convert a pay value to an hourly rate rounded to cents, or None."""
    text = format_pay(raw)
    if not text:
        return None
    amount = extract_amount(text)
    if amount is None:
        return None

    unit = _pay_unit(text)
    if unit == "hour":
        rate = amount
    elif unit == "day":
        rate = amount / HOURS_PER_DAY
    elif unit == "week":
        rate = amount / HOURS_PER_WEEK
    elif unit == "month":
        rate = amount * MONTHS_PER_YEAR / ANNUAL_HOURS
    elif unit == "year":
        rate = amount / ANNUAL_HOURS
    elif amount > ANNUAL_THRESHOLD:
        rate = amount / ANNUAL_HOURS
    else:
        rate = amount
    return round(rate, 2)
