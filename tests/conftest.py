"""Shared test fixtures."""

from __future__ import annotations

import io
import tempfile
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from PIL import Image

from receipt_extractor.classifier import ReceiptClassifier, train_classifier
from receipt_extractor.config import OcrConfig
from receipt_extractor.models import EmailMessage
from receipt_extractor.processor import ReceiptProcessor

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(scope="session")
def classifier() -> ReceiptClassifier:
    """Provide one trained classifier for the whole run."""
    return train_classifier()


@pytest.fixture
def processor(classifier: ReceiptClassifier) -> ReceiptProcessor:
    """Provide a processor backed by the shared classifier."""
    return ReceiptProcessor(classifier)


@pytest.fixture
def amazon_email() -> EmailMessage:
    """Provide a minimal Amazon order receipt."""
    return EmailMessage(
        source_id="<amazon-1@example.com>",
        sender="orders@amazon.com",
        subject="Your Amazon order confirmation: Receipt #AB123",
        body="Total: $45.67",
        received_at=datetime(2025, 6, 15, 10, 30, 0, tzinfo=UTC),
    )


@pytest.fixture
def meeting_email() -> EmailMessage:
    """Provide an ordinary non-receipt email."""
    return EmailMessage(
        source_id="<meeting-1@example.com>",
        sender="alice@example.com",
        subject="Team meeting invitation",
        body="Let's sync at 3pm",
        received_at=datetime(2025, 6, 16, 9, 0, 0, tzinfo=UTC),
    )


@pytest.fixture
def ocr_config() -> OcrConfig:
    """Provide an OCR configuration with small limits."""
    return OcrConfig(
        language="eng",
        max_attempts=3,
        backoff_base=1.0,
        download_timeout=5.0,
        max_image_bytes=1024 * 1024,
        timeout=60.0,
    )


@pytest.fixture
def ocr_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point tempfile at an isolated directory so leftovers can be counted."""
    root = tmp_path / "ocr-tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def png_bytes() -> bytes:
    """Provide a small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return buffer.getvalue()
