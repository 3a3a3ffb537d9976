"""Input, intermediate and output models for receipt extraction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, NamedTuple, get_args

from pydantic import BaseModel, Field

Currency = Literal["$", "€", "£", "¥", "₹"]
CURRENCY_SYMBOLS: tuple[Currency, ...] = get_args(Currency)

ReceiptLabel = Literal["receipt", "non-receipt"]


@dataclass(frozen=True)
class EmailMessage:
    """An inbound email as supplied by a mail source."""

    source_id: str
    sender: str
    subject: str
    body: str
    received_at: datetime | None = None
    html_body: str | None = None


@dataclass(frozen=True)
class ClassificationSignals:
    """Signals combined into the receipt / non-receipt decision."""

    from_vendor_match: bool
    subject_vendor_match: bool
    has_receipt_identifier: bool
    bayes_label: ReceiptLabel

    @property
    def is_receipt(self) -> bool:
        # The trained label only confirms a lexical signal, never on its own.
        return (
            (self.from_vendor_match and self.has_receipt_identifier)
            or (self.subject_vendor_match and self.has_receipt_identifier)
            or (
                self.bayes_label == "receipt"
                and (
                    self.from_vendor_match
                    or self.subject_vendor_match
                    or self.has_receipt_identifier
                )
            )
        )


@dataclass(frozen=True)
class AmountCandidate:
    """A monetary figure found in text."""

    raw: str
    value: float
    currency: Currency


class ExtractedAmount(NamedTuple):
    amount: float | None
    currency: Currency | None


class ReceiptRecord(BaseModel):
    """Structured fields extracted from one email or OCR text."""

    vendor: str | None = None
    amount: float | None = Field(default=None, gt=0.5)
    currency: Currency | None = None
    receipt_date: date | None = None
    order_number: str | None = None
    receipt_type: Literal["email", "ocr"] = "email"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source_id: str
    error: str | None = None
    email_subject: str | None = None
    email_sender: str | None = None
    email_date: datetime | None = None


class ProcessingResult(BaseModel):
    """Outcome of processing one email."""

    is_receipt: bool
    data: ReceiptRecord | None = None
