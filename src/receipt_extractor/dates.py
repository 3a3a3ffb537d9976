"""Transaction date extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DATE_CONTEXTS: tuple[str, ...] = (
    "order date",
    "purchase date",
    "transaction date",
    "payment date",
    "date of purchase",
    "invoice date",
    "receipt date",
)

CONTEXT_WINDOW = 50

# Earliest year accepted when a numeric date is read in the non-preferred order.
MIN_SWAPPED_YEAR = 2000

_MONTHS = tuple("jan feb mar apr may jun jul aug sep oct nov dec".split())
_MONTH_NAME = r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*"


@dataclass(frozen=True)
class _DatePattern:
    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str], bool], date | None]


def extract_date(text: str, *, day_first: bool = False) -> date | None:
    """Return the transaction date found in ``text``, or None.

    Dates that follow a label such as "Order date" are preferred; the
    whole text is searched only when no labelled date is found.

    Numeric dates like 03/04/2024 are read month-first unless
    ``day_first`` is set (Indian and most non-US receipts). When the
    preferred reading is not a real date, e.g. 25/12/2024 read
    month-first, the other order is used if the year is 2000 or later.
    """
    if not text:
        return None

    lowered = text.lower()
    for context in DATE_CONTEXTS:
        index = lowered.find(context)
        if index == -1:
            continue
        start = index + len(context)
        found = _search(text[start : start + CONTEXT_WINDOW], day_first)
        if found is not None:
            logger.debug("Date %s found after %r", found, context)
            return found

    return _search(text, day_first)


def _search(text: str, day_first: bool) -> date | None:
    for candidate in _PATTERNS:
        for match in candidate.pattern.finditer(text):
            parsed = candidate.build(match, day_first)
            if parsed is not None:
                logger.debug(
                    "Parsed %r as %s (%s)", match.group(0), parsed, candidate.name
                )
                return parsed
    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _build_numeric(match: re.Match[str], day_first: bool) -> date | None:
    first, second, year = (int(part) for part in match.groups())
    month, day = (second, first) if day_first else (first, second)
    preferred = _safe_date(year, month, day)
    if preferred is not None:
        return preferred
    if year < MIN_SWAPPED_YEAR:
        return None
    return _safe_date(year, day, month)


def _month_number(name: str) -> int:
    return _MONTHS.index(name[:3].lower()) + 1


def _build_month_day_year(match: re.Match[str], day_first: bool) -> date | None:
    month, day, year = match.groups()
    return _safe_date(int(year), _month_number(month), int(day))


def _build_day_month_year(match: re.Match[str], day_first: bool) -> date | None:
    day, month, year = match.groups()
    return _safe_date(int(year), _month_number(month), int(day))


def _build_iso(match: re.Match[str], day_first: bool) -> date | None:
    year, month, day = (int(part) for part in match.groups())
    return _safe_date(year, month, day)


# Numeric fields must not be cut out of longer digit runs such as reference ids.
_PATTERNS: tuple[_DatePattern, ...] = (
    _DatePattern(
        "slash",
        re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)"),
        _build_numeric,
    ),
    _DatePattern(
        "dash",
        re.compile(r"(?<!\d)(\d{1,2})-(\d{1,2})-(\d{4})(?!\d)"),
        _build_numeric,
    ),
    _DatePattern(
        "month-day-year",
        re.compile(_MONTH_NAME + r" (\d{1,2}),? (\d{4})(?!\d)", re.IGNORECASE),
        _build_month_day_year,
    ),
    _DatePattern(
        "day-month-year",
        re.compile(
            r"(?<!\d)(\d{1,2}) " + _MONTH_NAME + r" (\d{4})(?!\d)", re.IGNORECASE
        ),
        _build_day_month_year,
    ),
    _DatePattern(
        "iso",
        re.compile(r"(?<!\d)(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)"),
        _build_iso,
    ),
)
