"""Receipt detection and record assembly for emails and OCR text."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Literal

from receipt_extractor.amounts import RUPEE, extract_amount
from receipt_extractor.classifier import train_classifier
from receipt_extractor.dates import extract_date
from receipt_extractor.models import ProcessingResult, ReceiptRecord
from receipt_extractor.ocr import extract_text_from_image
from receipt_extractor.text import strip_html_tags
from receipt_extractor.vendors import extract_vendor

if TYPE_CHECKING:
    from datetime import date, datetime

    from receipt_extractor.classifier import ReceiptClassifier
    from receipt_extractor.config import OcrConfig
    from receipt_extractor.models import EmailMessage

logger = logging.getLogger(__name__)

VENDOR_WEIGHT = 0.3
AMOUNT_WEIGHT = 0.5
DATE_WEIGHT = 0.2

_ORDER_TOKEN = r"([A-Za-z0-9-]*\d[A-Za-z0-9-]*)"
ORDER_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(
        rf"\b{label}\s*(?:number|no\.?|id)?[^a-zA-Z0-9]*#?\s*{_ORDER_TOKEN}",
        re.IGNORECASE,
    )
    for label in ("order", "confirmation", "receipt")
)


def calculate_confidence(
    vendor: str | None, amount: float | None, receipt_date: date | None
) -> float:
    """Score how many of vendor, amount and date were found, from 0 to 1."""
    score = 0.0
    if vendor is not None:
        score += VENDOR_WEIGHT
    if amount is not None:
        score += AMOUNT_WEIGHT
    if receipt_date is not None:
        score += DATE_WEIGHT
    return min(score, 1.0)


def extract_order_number(*texts: str) -> str | None:
    """Return the first order, confirmation or receipt number in ``texts``.

    Each pattern is tried against every text before the next pattern,
    so an order number in the subject beats a receipt number in the body.
    """
    for pattern in ORDER_NUMBER_PATTERNS:
        for text in texts:
            match = pattern.search(text or "")
            if match:
                return match.group(1)
    return None


class ReceiptProcessor:
    """Decide whether an input is a receipt and extract its fields.

    Accepts an optional classifier for dependency injection; a default
    one is trained when none is given.
    """

    def __init__(self, classifier: ReceiptClassifier | None = None) -> None:
        self.classifier = classifier if classifier is not None else train_classifier()

    def process(self, email: EmailMessage) -> ProcessingResult:
        """Classify ``email`` and extract a record when it is a receipt.

        Never raises; a classification failure counts as not a receipt.
        """
        try:
            is_receipt = self.classifier.classify(email)
        except Exception:
            logger.warning(
                "Failed to classify message %s", _source_id(email), exc_info=True
            )
            return ProcessingResult(is_receipt=False)

        if not is_receipt:
            return ProcessingResult(is_receipt=False)
        return ProcessingResult(is_receipt=True, data=self.extract_receipt_data(email))

    def extract_receipt_data(self, email: EmailMessage) -> ReceiptRecord:
        """Extract a record from an email without classifying it first."""
        try:
            body = email.body or ""
            text = body or strip_html_tags(email.html_body or "")
            return self._build_record(
                source_id=email.source_id,
                receipt_type="email",
                sender=email.sender or "",
                subject=email.subject or "",
                text=text,
                html_text=email.html_body,
                email_subject=email.subject,
                email_sender=email.sender,
                email_date=email.received_at,
            )
        except Exception as exc:
            return _failed_record(_source_id(email), "email", exc)

    def process_text(self, text: str, source_id: str) -> ReceiptRecord:
        """Extract a record from OCR text.

        The first non-blank line stands in for the subject when looking
        for a vendor name.
        """
        try:
            text = text or ""
            lines = (line.strip() for line in text.splitlines())
            heading = next((line for line in lines if line), "")
            return self._build_record(
                source_id=source_id,
                receipt_type="ocr",
                sender="",
                subject=heading,
                text=text,
            )
        except Exception as exc:
            return _failed_record(source_id, "ocr", exc)

    def process_image(
        self,
        image_url: str,
        source_id: str | None = None,
        *,
        config: OcrConfig | None = None,
    ) -> ReceiptRecord:
        """Run OCR on an image and extract a record from the text.

        Acquisition errors propagate; there is nothing to extract from.
        """
        text = extract_text_from_image(image_url, config=config)
        return self.process_text(text, source_id or image_url)

    @staticmethod
    def _build_record(
        *,
        source_id: str,
        receipt_type: Literal["email", "ocr"],
        sender: str,
        subject: str,
        text: str,
        html_text: str | None = None,
        email_subject: str | None = None,
        email_sender: str | None = None,
        email_date: datetime | None = None,
    ) -> ReceiptRecord:
        vendor = extract_vendor(sender, subject, text)
        amount, currency = extract_amount(text, html_text)
        # Rupee totals come from Indian vendors, which write dates day-first.
        receipt_date = extract_date(text, day_first=currency == RUPEE)
        order_number = extract_order_number(text, subject)

        return ReceiptRecord(
            vendor=vendor,
            amount=amount,
            currency=currency,
            receipt_date=receipt_date,
            order_number=order_number,
            receipt_type=receipt_type,
            confidence=calculate_confidence(vendor, amount, receipt_date),
            source_id=source_id,
            email_subject=email_subject,
            email_sender=email_sender,
            email_date=email_date,
        )


def _source_id(email: object) -> str:
    return str(getattr(email, "source_id", None) or "")


def _failed_record(
    source_id: str, receipt_type: Literal["email", "ocr"], exc: Exception
) -> ReceiptRecord:
    logger.warning("Failed to extract receipt data from %s", source_id, exc_info=True)
    return ReceiptRecord(
        source_id=str(source_id or ""),
        receipt_type=receipt_type,
        confidence=0.0,
        error=str(exc) or type(exc).__name__,
    )
