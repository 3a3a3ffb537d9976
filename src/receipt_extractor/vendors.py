"""Vendor tables and vendor-name extraction."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from receipt_extractor.text import first_lines

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

EMAIL_PROVIDERS = frozenset(
    {"gmail", "yahoo", "outlook", "hotmail", "aol", "protonmail"}
)

# Canonical casing; order decides which name wins when a subject holds two.
KNOWN_VENDORS: tuple[str, ...] = (
    "Amazon",
    "Walmart",
    "Uber",
    "Lyft",
    "DoorDash",
    "Grubhub",
    "Instacart",
    "Target",
    "Best Buy",
    "Apple",
    "Microsoft",
    "Netflix",
    "Spotify",
    "eBay",
    # India: marketplaces and fashion
    "Flipkart",
    "Myntra",
    "Ajio",
    "Nykaa",
    "Meesho",
    "Snapdeal",
    # India: food and grocery delivery
    "Swiggy",
    "Zomato",
    "Blinkit",
    "Zepto",
    "Bigbasket",
    "Grofers",
    # India: travel
    "MakeMyTrip",
    "Goibibo",
    "Cleartrip",
    "Easemytrip",
    "Yatra",
    # India: payments
    "Paytm",
    "PhonePe",
    "GooglePay",
    "Razorpay",
    # India: retail chains
    "JioMart",
    "Reliance",
    "TataCliq",
    "Croma",
    "DMart",
    "FirstCry",
    # India: mobility
    "Ola",
    "Rapido",
    "RedBus",
    "IRCTC",
    "The Souled Store",
    "Bewakoof",
    "TeePublic",
)

RECEIPT_IDENTIFIERS: tuple[str, ...] = (
    "receipt",
    "order",
    "invoice",
    "purchase",
    "payment",
    "confirmation",
)

# Lower-cased keywords matched against sender and subject by the classifier.
VENDOR_KEYWORDS: tuple[str, ...] = (
    *(name.lower() for name in KNOWN_VENDORS),
    "bestbuy",
    "costco",
    "invoice",
    "receipt",
    "order",
    "purchase",
    "payment",
    "transaction",
)


def _whole_word(word: str, suffix: str = "") -> re.Pattern[str]:
    """Match lower-cased ``word`` not embedded in a longer name or address."""
    return re.compile(rf"(?<![a-z0-9]){re.escape(word)}{suffix}(?![a-z0-9])")


# Plurals count, so "orders@" and "Your orders" still match.
_VENDOR_KEYWORD_RES = tuple(_whole_word(k, suffix="s?") for k in VENDOR_KEYWORDS)
_KNOWN_VENDOR_RES = tuple(
    (vendor, _whole_word(vendor.lower())) for vendor in KNOWN_VENDORS
)

_SENDER_RE = re.compile(r"([^<@\s]+)@([^@\s>]+)")
_FROM_VENDOR_RE = re.compile(r"from\s+([A-Z][A-Za-z0-9\s&]+)")
_YOUR_VENDOR_ORDER_RE = re.compile(
    r"your\s+([A-Z][A-Za-z0-9\s&]+)\s+order", re.IGNORECASE
)
_THANK_YOU_RE = re.compile(
    r"thank you for (shopping|ordering) (from|with|at) ([A-Z][A-Za-z0-9\s&]+)",
    re.IGNORECASE,
)

_BODY_HEAD_LINES = 5


def extract_vendor(from_address: str, subject: str, body: str) -> str | None:
    """Return the vendor name for an email, or None.

    Resolution order, first hit wins:
    1. Sender domain, unless it is a consumer mail provider
    2. A known vendor named in the subject
    3. "from <Vendor>" in the subject
    4. "your <Vendor> order" in the subject
    5. "thank you for shopping/ordering with <Vendor>" in the first body lines
    """
    from_address = from_address or ""
    subject = subject or ""
    body = body or ""
    for resolver in _RESOLVERS:
        vendor = resolver(from_address, subject, body)
        if vendor:
            logger.debug("Vendor %r resolved by %s", vendor, resolver.__name__)
            return vendor
    return None


def mentions_vendor_keyword(text: str) -> bool:
    """Return True if lower-cased ``text`` contains any vendor keyword as a word.

    "nicola@example.com" does not mention "ola"; "no-reply@ola.in" does.
    """
    return any(pattern.search(text) for pattern in _VENDOR_KEYWORD_RES)


def _vendor_from_sender(from_address: str, subject: str, body: str) -> str | None:
    match = _SENDER_RE.search(from_address)
    if match is None:
        return None
    label = match.group(2).split(".")[0]
    if not label or label.lower() in EMAIL_PROVIDERS:
        return None
    return label[0].upper() + label[1:]


def _vendor_from_known_list(from_address: str, subject: str, body: str) -> str | None:
    lowered = subject.lower()
    for vendor, pattern in _KNOWN_VENDOR_RES:
        if pattern.search(lowered):
            return vendor
    return None


def _vendor_from_subject_from(from_address: str, subject: str, body: str) -> str | None:
    match = _FROM_VENDOR_RE.search(subject)
    return match.group(1).strip() if match else None


def _vendor_from_your_order(from_address: str, subject: str, body: str) -> str | None:
    match = _YOUR_VENDOR_ORDER_RE.search(subject)
    return match.group(1).strip() if match else None


def _vendor_from_thank_you(from_address: str, subject: str, body: str) -> str | None:
    match = _THANK_YOU_RE.search(first_lines(body, _BODY_HEAD_LINES))
    return match.group(3).strip() if match else None


_RESOLVERS: tuple[Callable[[str, str, str], str | None], ...] = (
    _vendor_from_sender,
    _vendor_from_known_list,
    _vendor_from_subject_from,
    _vendor_from_your_order,
    _vendor_from_thank_you,
)
