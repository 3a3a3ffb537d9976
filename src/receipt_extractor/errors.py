"""Exceptions raised when no receipt text can be acquired."""

from __future__ import annotations


class ReceiptExtractorError(Exception):
    """Base class for receipt-extractor errors."""


class AcquisitionError(ReceiptExtractorError):
    """No text could be obtained for an input."""


class ImageDownloadError(AcquisitionError):
    """The image could not be downloaded after every attempt."""

    def __init__(self, url: str, attempts: int, last_error: BaseException) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to download image after {attempts} attempt(s): {last_error}"
        )


class OcrError(AcquisitionError):
    """The OCR engine failed or returned no text."""


class OcrTimeoutError(OcrError):
    """Download and recognition did not finish within the configured timeout."""
