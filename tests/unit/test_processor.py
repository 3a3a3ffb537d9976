"""Tests for receipt_extractor.processor."""

from __future__ import annotations

import dataclasses
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from receipt_extractor.classifier import ReceiptClassifier
from receipt_extractor.errors import ImageDownloadError
from receipt_extractor.models import EmailMessage, ProcessingResult, ReceiptRecord
from receipt_extractor.processor import (
    ReceiptProcessor,
    calculate_confidence,
    extract_order_number,
)


class TestCalculateConfidence:
    """Tests for calculate_confidence()."""

    @pytest.mark.parametrize(
        ("vendor", "amount", "receipt_date", "expected"),
        [
            (None, None, None, 0.0),
            ("Amazon", None, None, 0.3),
            (None, 12.5, None, 0.5),
            (None, None, date(2024, 1, 1), 0.2),
            ("Amazon", 12.5, None, 0.8),
            ("Amazon", None, date(2024, 1, 1), 0.5),
            (None, 12.5, date(2024, 1, 1), 0.7),
            ("Amazon", 12.5, date(2024, 1, 1), 1.0),
        ],
    )
    def test_weights(
        self,
        vendor: str | None,
        amount: float | None,
        receipt_date: date | None,
        expected: float,
    ) -> None:
        assert calculate_confidence(vendor, amount, receipt_date) == pytest.approx(
            expected
        )


class TestExtractOrderNumber:
    """Tests for extract_order_number()."""

    def test_order_hash(self) -> None:
        assert extract_order_number("Order #112-3456789-1234567") == (
            "112-3456789-1234567"
        )

    def test_confirmation_number(self) -> None:
        assert extract_order_number("Confirmation number: XK42Z") == "XK42Z"

    def test_receipt_hash(self) -> None:
        assert extract_order_number("Receipt #AB123") == "AB123"

    def test_skips_words_without_digits(self) -> None:
        text = "Your order confirmation: Receipt #AB123"
        assert extract_order_number(text) == "AB123"

    def test_order_beats_receipt_across_texts(self) -> None:
        assert extract_order_number("Receipt #R-1", "Order ID: OD99") == "OD99"

    def test_none_when_absent(self) -> None:
        assert extract_order_number("Your order has shipped", "") is None


class TestProcess:
    """Tests for ReceiptProcessor.process()."""

    def test_amazon_round_trip(
        self, processor: ReceiptProcessor, amazon_email: EmailMessage
    ) -> None:
        result = processor.process(amazon_email)

        assert result.is_receipt is True
        assert result.data is not None
        assert result.data.vendor == "Amazon"
        assert result.data.amount == pytest.approx(45.67)
        assert result.data.currency == "$"
        assert result.data.order_number == "AB123"
        assert result.data.receipt_date is None
        assert result.data.confidence == pytest.approx(0.8)
        assert result.data.receipt_type == "email"
        assert result.data.source_id == "<amazon-1@example.com>"
        assert result.data.error is None

    def test_meeting_is_not_receipt(
        self, processor: ReceiptProcessor, meeting_email: EmailMessage
    ) -> None:
        assert processor.process(meeting_email) == ProcessingResult(is_receipt=False)

    def test_negative_skips_extraction(
        self, processor: ReceiptProcessor, meeting_email: EmailMessage
    ) -> None:
        with patch("receipt_extractor.processor.extract_vendor") as mock_vendor:
            processor.process(meeting_email)
        mock_vendor.assert_not_called()

    def test_rupee_receipt_reads_dates_day_first(
        self, processor: ReceiptProcessor
    ) -> None:
        email = EmailMessage(
            source_id="swiggy-1",
            sender="noreply@swiggy.in",
            subject="Your Swiggy order receipt",
            body="Order Date: 03/04/2024 ... Total Rs. 1200",
        )
        result = processor.process(email)

        assert result.data is not None
        assert result.data.vendor == "Swiggy"
        assert result.data.amount == pytest.approx(1200.0)
        assert result.data.currency == "₹"
        assert result.data.receipt_date == date(2024, 4, 3)
        assert result.data.confidence == pytest.approx(1.0)

    def test_dollar_receipt_reads_dates_month_first(
        self, processor: ReceiptProcessor
    ) -> None:
        email = EmailMessage(
            source_id="target-1",
            sender="receipts@target.com",
            subject="Your Target order receipt",
            body="Order Date: 03/04/2024\nTotal: $18.20",
        )
        result = processor.process(email)

        assert result.data is not None
        assert result.data.receipt_date == date(2024, 3, 4)

    def test_html_only_email(self, processor: ReceiptProcessor) -> None:
        email = EmailMessage(
            source_id="html-1",
            sender="shop@bluebird.com",
            subject="Your order receipt",
            body="",
            html_body="<p>Thank you for your order</p><p>Total: $19.99</p>",
        )
        result = processor.process(email)

        assert result.data is not None
        assert result.data.vendor == "Bluebird"
        assert result.data.amount == pytest.approx(19.99)

    def test_keeps_email_metadata(
        self, processor: ReceiptProcessor, amazon_email: EmailMessage
    ) -> None:
        result = processor.process(amazon_email)

        assert result.data is not None
        assert result.data.email_subject == amazon_email.subject
        assert result.data.email_sender == amazon_email.sender
        assert result.data.email_date == amazon_email.received_at

    def test_extraction_failure_becomes_error_record(
        self, processor: ReceiptProcessor, amazon_email: EmailMessage
    ) -> None:
        with patch(
            "receipt_extractor.processor.extract_amount",
            side_effect=RuntimeError("boom"),
        ):
            result = processor.process(amazon_email)

        assert result.is_receipt is True
        assert result.data == ReceiptRecord(
            source_id="<amazon-1@example.com>",
            receipt_type="email",
            confidence=0.0,
            error="boom",
        )

    def test_classifier_failure_is_not_receipt(
        self, amazon_email: EmailMessage
    ) -> None:
        classifier = MagicMock(spec=ReceiptClassifier)
        classifier.classify.side_effect = RuntimeError("model broken")
        processor = ReceiptProcessor(classifier)

        assert processor.process(amazon_email) == ProcessingResult(is_receipt=False)

    @pytest.mark.parametrize(
        "email",
        [
            EmailMessage(source_id="", sender="", subject="", body=""),
            EmailMessage(
                source_id="x",
                sender=None,  # type: ignore[arg-type]
                subject="Your order receipt",
                body=None,  # type: ignore[arg-type]
            ),
            EmailMessage(
                source_id=None,  # type: ignore[arg-type]
                sender="orders@amazon.com",
                subject="Order receipt",
                body="Total: $1,2,3.4.5",
            ),
            None,
        ],
    )
    def test_never_raises(
        self, processor: ReceiptProcessor, email: EmailMessage
    ) -> None:
        result = processor.process(email)
        assert isinstance(result, ProcessingResult)
        if result.data is not None:
            assert 0.0 <= result.data.confidence <= 1.0

    def test_overflowing_amount_not_scored(self, processor: ReceiptProcessor) -> None:
        email = EmailMessage(
            source_id="overflow-1",
            sender="orders@amazon.com",
            subject="Your Amazon order receipt",
            body="Total: $" + "9" * 400,
        )
        result = processor.process(email)

        assert result.data is not None
        assert result.data.amount is None
        assert result.data.confidence == pytest.approx(0.3)
        assert '"amount":null' in result.data.model_dump_json()

    def test_reference_number_is_not_a_date(
        self, processor: ReceiptProcessor, amazon_email: EmailMessage
    ) -> None:
        email = dataclasses.replace(
            amazon_email, body="Invoice INV-123/04/2024 issued\nTotal: $45.67"
        )
        result = processor.process(email)

        assert result.data is not None
        assert result.data.receipt_date is None
        assert result.data.confidence == pytest.approx(0.8)

    def test_default_classifier_trained(self) -> None:
        assert isinstance(ReceiptProcessor().classifier, ReceiptClassifier)


class TestProcessText:
    """Tests for ReceiptProcessor.process_text() and process_image()."""

    OCR_TEXT = (
        "FRESH MART\n"
        "Thank you for shopping at Fresh Mart.\n"
        "Date 12/05/2024\n"
        "TOTAL $23.40\n"
    )

    def test_ocr_text(self, processor: ReceiptProcessor) -> None:
        record = processor.process_text(self.OCR_TEXT, "upload-1")

        assert record.receipt_type == "ocr"
        assert record.source_id == "upload-1"
        assert record.vendor == "Fresh Mart"
        assert record.amount == pytest.approx(23.40)
        assert record.currency == "$"
        assert record.receipt_date == date(2024, 12, 5)
        assert record.confidence == pytest.approx(1.0)

    def test_empty_ocr_text(self, processor: ReceiptProcessor) -> None:
        record = processor.process_text("", "upload-2")
        assert record.confidence == 0.0
        assert record.error is None

    def test_process_image(self, processor: ReceiptProcessor) -> None:
        with patch(
            "receipt_extractor.processor.extract_text_from_image",
            return_value=self.OCR_TEXT,
        ) as mock_ocr:
            record = processor.process_image("https://files.example.com/r.png")

        mock_ocr.assert_called_once_with("https://files.example.com/r.png", config=None)
        assert record.source_id == "https://files.example.com/r.png"
        assert record.amount == pytest.approx(23.40)

    def test_process_image_propagates_acquisition_error(
        self, processor: ReceiptProcessor
    ) -> None:
        error = ImageDownloadError("https://x", 3, ConnectionError("down"))
        with (
            patch(
                "receipt_extractor.processor.extract_text_from_image",
                side_effect=error,
            ),
            pytest.raises(ImageDownloadError),
        ):
            processor.process_image("https://x", "upload-3")
