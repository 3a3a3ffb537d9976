"""Configuration via environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class OcrConfig:
    """OCR acquisition configuration."""

    language: str = "eng"
    max_attempts: int = 3
    backoff_base: float = 1.0
    download_timeout: float = 10.0
    max_image_bytes: int = 10 * 1024 * 1024
    timeout: float = 60.0
    tesseract_cmd: str | None = None


def get_inbox_path() -> Path:
    """Return the RECEIPT_INBOX_PATH, defaulting to ./data/inbox.

    Always resolves to an absolute path to avoid issues if the
    working directory changes during execution.
    """
    return Path(os.environ.get("RECEIPT_INBOX_PATH", "./data/inbox")).resolve()


def get_ocr_config() -> OcrConfig:
    """Build OCR configuration from environment variables.

    Optional: OCR_LANGUAGE (default eng), OCR_MAX_ATTEMPTS (default 3),
    OCR_BACKOFF_BASE (default 1.0), OCR_DOWNLOAD_TIMEOUT (default 10),
    OCR_MAX_IMAGE_BYTES (default 10 MiB), OCR_TIMEOUT (default 60),
    TESSERACT_CMD (default: tesseract on PATH)
    """
    defaults = OcrConfig()
    return OcrConfig(
        language=os.environ.get("OCR_LANGUAGE", defaults.language),
        max_attempts=int(_positive_number("OCR_MAX_ATTEMPTS", defaults.max_attempts)),
        backoff_base=_positive_number("OCR_BACKOFF_BASE", defaults.backoff_base),
        download_timeout=_positive_number(
            "OCR_DOWNLOAD_TIMEOUT", defaults.download_timeout
        ),
        max_image_bytes=int(
            _positive_number("OCR_MAX_IMAGE_BYTES", defaults.max_image_bytes)
        ),
        timeout=_positive_number("OCR_TIMEOUT", defaults.timeout),
        tesseract_cmd=os.environ.get("TESSERACT_CMD") or None,
    )


def _positive_number(name: str, default: float) -> float:
    """Read a positive number from the environment, or return the default."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got {raw!r}"
        raise ValueError(msg) from None
    if value <= 0:
        msg = f"{name} must be positive, got {raw!r}"
        raise ValueError(msg)
    return value
