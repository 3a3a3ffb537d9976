"""Image download and OCR for uploaded receipt images."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

import pytesseract
import requests
from PIL import Image, ImageFilter, ImageOps

from receipt_extractor.config import get_ocr_config
from receipt_extractor.errors import ImageDownloadError, OcrError, OcrTimeoutError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from receipt_extractor.config import OcrConfig

logger = logging.getLogger(__name__)

TEMP_PREFIX = "receipt-ocr-"
TESSERACT_CONFIG = "--oem 3 --psm 1"
_CHUNK_SIZE = 64 * 1024


def extract_text_from_image(
    image_url: str,
    *,
    config: OcrConfig | None = None,
    session: requests.Session | None = None,
) -> str:
    """Download an image and return the raw text recognised in it.

    The image lives in a temporary file for the duration of the call and
    is deleted on every exit path. Download and recognition share one
    deadline of ``config.timeout`` seconds.

    Raises ImageDownloadError when every download attempt fails,
    OcrTimeoutError when the deadline passes, and OcrError when
    recognition fails or finds no text.
    """
    if config is None:
        config = get_ocr_config()
    deadline = time.monotonic() + config.timeout

    logger.info("Starting OCR for %s", image_url)
    with temporary_image_file() as path:
        size = download_image(
            image_url, path, config=config, session=session, deadline=deadline
        )
        logger.debug("Downloaded %d bytes from %s", size, image_url)

        with TesseractEngine(config.language, config.tesseract_cmd) as engine:
            text = engine.recognize(path, timeout=_remaining(deadline))

    logger.info("OCR finished for %s: %d characters", image_url, len(text))
    return text


async def extract_text_from_image_async(
    image_url: str,
    *,
    config: OcrConfig | None = None,
    session: requests.Session | None = None,
) -> str:
    """Run :func:`extract_text_from_image` in a worker thread."""
    return await asyncio.to_thread(
        extract_text_from_image, image_url, config=config, session=session
    )


@contextmanager
def temporary_image_file() -> Iterator[Path]:
    """Yield a uniquely named empty file that is removed on exit."""
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def download_image(
    url: str,
    destination: Path,
    *,
    config: OcrConfig,
    session: requests.Session | None = None,
    deadline: float | None = None,
) -> int:
    """Download ``url`` into ``destination`` and return the byte count.

    Failed requests are retried up to ``config.max_attempts`` times in
    total, sleeping ``backoff_base * 2**n`` seconds between attempts.
    """
    http: Any = session if session is not None else requests
    last_error: BaseException | None = None

    for attempt in range(1, config.max_attempts + 1):
        timeout = min(config.download_timeout, _remaining(deadline))
        try:
            return _fetch(http, url, destination, timeout, config.max_image_bytes)
        except requests.RequestException as exc:
            last_error = exc
            logger.warning(
                "Image download failed (attempt %d/%d): %s",
                attempt,
                config.max_attempts,
                exc,
            )
        except ValueError as exc:
            raise ImageDownloadError(url, attempt, exc) from exc

        if attempt < config.max_attempts:
            delay = config.backoff_base * 2 ** (attempt - 1)
            if deadline is not None and time.monotonic() + delay >= deadline:
                msg = f"OCR timed out while retrying download of {url}"
                raise OcrTimeoutError(msg) from last_error
            logger.debug("Retrying download in %.1fs", delay)
            time.sleep(delay)

    raise ImageDownloadError(
        url, config.max_attempts, cast("BaseException", last_error)
    )


def _fetch(
    http: Any, url: str, destination: Path, timeout: float, max_bytes: int
) -> int:
    response = http.get(url, stream=True, timeout=timeout)
    try:
        response.raise_for_status()
        size = 0
        with destination.open("wb") as out:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                size += len(chunk)
                if size > max_bytes:
                    msg = f"Image exceeds {max_bytes} bytes"
                    raise ValueError(msg)
                out.write(chunk)
        return size
    finally:
        response.close()


def _remaining(deadline: float | None) -> float:
    """Seconds left before ``deadline``; raises OcrTimeoutError when none."""
    if deadline is None:
        return float("inf")
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        msg = "OCR timed out"
        raise OcrTimeoutError(msg)
    return remaining


def preprocess_image(image: Image.Image) -> Image.Image:
    """Greyscale, stretch contrast and sharpen an image for recognition."""
    grey = ImageOps.grayscale(image)
    return ImageOps.autocontrast(grey).filter(ImageFilter.SHARPEN)


class TesseractEngine:
    """A single-use OCR engine handle.

    Use as a context manager; images opened by :meth:`recognize` are
    released on exit and the handle cannot be used afterwards.
    """

    def __init__(
        self, language: str = "eng", tesseract_cmd: str | None = None
    ) -> None:
        self.language = language
        self.tesseract_cmd = tesseract_cmd
        self._images: list[Image.Image] = []
        self._active = False

    def __enter__(self) -> TesseractEngine:
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        self._active = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        for image in self._images:
            image.close()
        self._images.clear()
        self._active = False

    def recognize(self, path: Path, *, timeout: float = 0) -> str:
        """Return the text recognised in the image at ``path``."""
        if not self._active:
            msg = "OCR engine is not active"
            raise OcrError(msg)

        try:
            image = Image.open(path)
            self._images.append(image)
            prepared = preprocess_image(image)
            self._images.append(prepared)
            text = pytesseract.image_to_string(
                prepared,
                lang=self.language,
                config=TESSERACT_CONFIG,
                timeout=0 if timeout == float("inf") else timeout,
            )
        except RuntimeError as exc:
            if "timeout" in str(exc).lower():
                msg = "OCR timed out during recognition"
                raise OcrTimeoutError(msg) from exc
            msg = f"Failed to extract text from image: {exc}"
            raise OcrError(msg) from exc
        except (OSError, Image.DecompressionBombError) as exc:
            msg = f"Failed to extract text from image: {exc}"
            raise OcrError(msg) from exc

        if not text or not text.strip():
            msg = "OCR returned no text"
            raise OcrError(msg)
        return str(text)
