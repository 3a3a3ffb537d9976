"""Monetary amount and currency extraction."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from receipt_extractor.models import CURRENCY_SYMBOLS, AmountCandidate, ExtractedAmount
from receipt_extractor.text import strip_html_tags

if TYPE_CHECKING:
    from receipt_extractor.models import Currency

logger = logging.getLogger(__name__)

# Anything at or below this is noise such as page numbers or "$0.00" lines.
MIN_AMOUNT = 0.5

DEFAULT_CURRENCY: Currency = "$"
RUPEE: Currency = "₹"

_SYMBOLS = "[" + re.escape("".join(CURRENCY_SYMBOLS)) + "]"
_NUMBER = r"(\d+(?:[.,]\d+)*)"

_SYMBOL_AMOUNT_RE = re.compile(rf"({_SYMBOLS})\s*{_NUMBER}")
_LABELLED_TOTAL_RE = re.compile(
    rf"\b(?:total|amount|grand total|paid):?\s*({_SYMBOLS})?\s*{_NUMBER}",
    re.IGNORECASE,
)
_RUPEE_MARKERS = ("rs.", "rs", "inr", "rupees", RUPEE)


@dataclass(frozen=True)
class _TotalPattern:
    """A fallback pattern and the currency it implies when no symbol is present."""

    pattern: re.Pattern[str]
    currency: Currency


_TOTAL_PATTERNS: tuple[_TotalPattern, ...] = (
    _TotalPattern(
        re.compile(rf"total:?\s*{_SYMBOLS}?\s*{_NUMBER}", re.IGNORECASE),
        DEFAULT_CURRENCY,
    ),
    _TotalPattern(re.compile(rf"\b(?:rs\.?|inr)\s*{_NUMBER}", re.IGNORECASE), RUPEE),
    _TotalPattern(re.compile(rf"\brupees\s*{_NUMBER}", re.IGNORECASE), RUPEE),
    _TotalPattern(
        re.compile(
            rf"(?:total after gst|final amount):?\s*"
            rf"(?:{_SYMBOLS}|rs\.?|inr)?\s*{_NUMBER}",
            re.IGNORECASE,
        ),
        DEFAULT_CURRENCY,
    ),
)


def extract_amount(plain_text: str, html_text: str | None = None) -> ExtractedAmount:
    """Return the receipt total and its currency symbol.

    A label-anchored total ("Total: $12.00") wins over free-floating
    figures; otherwise the largest candidate is taken. Tag-stripped
    ``html_text`` is searched only when ``plain_text`` yields nothing.
    """
    result = _extract_from_text(plain_text or "")
    if result.amount is None and html_text:
        logger.debug("No amount in plain text, trying HTML body")
        result = _extract_from_text(strip_html_tags(html_text))
    return result


def scan_amount_candidates(text: str) -> list[AmountCandidate]:
    """Return every monetary candidate above the noise threshold.

    Currency-symbol tokens are preferred; the locale-aware total patterns
    are only consulted when none are present.
    """
    candidates = [
        AmountCandidate(
            raw=match.group(0),
            value=value,
            currency=cast("Currency", match.group(1)),
        )
        for match in _SYMBOL_AMOUNT_RE.finditer(text)
        if (value := _parse_number(match.group(2))) is not None
    ]
    if candidates:
        return candidates

    for total in _TOTAL_PATTERNS:
        for match in total.pattern.finditer(text):
            value = _parse_number(match.group(1))
            if value is None:
                continue
            candidates.append(
                AmountCandidate(
                    raw=match.group(0),
                    value=value,
                    currency=_infer_currency(match.group(0), total.currency),
                )
            )
    return candidates


def _extract_from_text(text: str) -> ExtractedAmount:
    candidates = scan_amount_candidates(text)

    labelled = _labelled_total(text, candidates)
    if labelled is not None:
        return labelled

    if not candidates:
        return ExtractedAmount(amount=None, currency=None)
    best = max(candidates, key=lambda candidate: candidate.value)
    return ExtractedAmount(amount=best.value, currency=best.currency)


def _labelled_total(
    text: str, candidates: list[AmountCandidate]
) -> ExtractedAmount | None:
    match = _LABELLED_TOTAL_RE.search(text)
    if match is None:
        return None
    value = _parse_number(match.group(2))
    if value is None:
        return None

    currency = cast("Currency | None", match.group(1))
    if currency is None:
        same_value = [c for c in candidates if c.value == value]
        currency = same_value[0].currency if same_value else DEFAULT_CURRENCY
    return ExtractedAmount(amount=value, currency=currency)


def _infer_currency(raw: str, default: Currency) -> Currency:
    symbol = _SYMBOL_AMOUNT_RE.search(raw)
    if symbol is not None:
        return cast("Currency", symbol.group(1))
    lowered = raw.lower()
    if any(marker in lowered for marker in _RUPEE_MARKERS):
        return RUPEE
    return default


def _parse_number(raw: str) -> float | None:
    """Parse "1,234.56" as 1234.56; None for noise at or below MIN_AMOUNT.

    Digit runs too long for a float come back as inf and are rejected.
    """
    try:
        value = float(raw.replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value) or value <= MIN_AMOUNT:
        return None
    return value
