"""Read saved ``.eml`` files as email messages."""

from __future__ import annotations

import hashlib
import logging
from datetime import UTC, datetime
from email import message_from_bytes
from email.header import decode_header
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, cast

from receipt_extractor.models import EmailMessage
from receipt_extractor.text import strip_html_tags

if TYPE_CHECKING:
    from collections.abc import Iterator
    from email.message import Message
    from pathlib import Path

logger = logging.getLogger(__name__)


class EmlDirectoryAdapter:
    """Yield email messages from the ``*.eml`` files in a directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def fetch_unprocessed(self, processed_ids: set[str]) -> Iterator[EmailMessage]:
        """Parse each file in name order, skipping already-processed ids."""
        for path in sorted(self.root.glob("*.eml")):
            try:
                email = load_eml(path)
            except Exception:
                logger.warning("Failed to parse %s", path, exc_info=True)
                continue

            if email.source_id in processed_ids:
                logger.debug("Skipping already-processed message %s", email.source_id)
                continue
            yield email


def load_eml(path: Path) -> EmailMessage:
    """Parse one RFC 822 file into an EmailMessage."""
    return parse_message(message_from_bytes(path.read_bytes()))


def parse_message(msg: Message) -> EmailMessage:
    """Convert an email Message to an EmailMessage.

    The plain-text part is used as the body; when there is none, the
    tag-stripped HTML part is used instead.
    """
    subject = _decode_header_value(msg.get("Subject", ""))
    sender = _decode_header_value(msg.get("From", ""))

    date_str = msg.get("Date")
    try:
        received_at = parsedate_to_datetime(date_str) if date_str else None
    except (TypeError, ValueError):
        logger.debug("Unparseable Date header %r", date_str)
        received_at = None

    html_body, text_body = _extract_bodies(msg)
    body = text_body if text_body is not None else strip_html_tags(html_body or "")

    return EmailMessage(
        source_id=_get_message_id(msg),
        sender=sender,
        subject=subject,
        body=body,
        received_at=received_at or datetime.now(tz=UTC),
        html_body=html_body,
    )


def _get_message_id(msg: Message) -> str:
    """Extract a unique identifier for the message.

    Uses the Message-ID header if present; falls back to a hash
    of subject + date + sender.
    """
    message_id = msg.get("Message-ID")
    if message_id:
        return str(message_id).strip()

    key = f"{msg.get('Subject', '')}|{msg.get('Date', '')}|{msg.get('From', '')}"
    return hashlib.sha256(key.encode()).hexdigest()


def _decode_header_value(value: str | None) -> str:
    """Decode an RFC 2047 encoded header value."""
    if not value:
        return ""
    decoded_parts: list[str] = []
    for data, charset in decode_header(str(value)):
        if isinstance(data, bytes):
            decoded_parts.append(data.decode(charset or "utf-8", errors="replace"))
        else:
            decoded_parts.append(data)
    return "".join(decoded_parts)


def _extract_bodies(msg: Message) -> tuple[str | None, str | None]:
    """Return the first text/html and text/plain parts that are not attachments."""
    html_body: str | None = None
    text_body: str | None = None

    for part in msg.walk():
        if part.get_content_maintype() == "multipart":
            continue
        disposition = str(part.get("Content-Disposition", ""))
        if part.get_filename() or "attachment" in disposition.lower():
            continue

        content_type = part.get_content_type()
        if content_type not in ("text/html", "text/plain"):
            continue

        raw_payload = part.get_payload(decode=True)
        if raw_payload is None:
            continue
        charset = part.get_content_charset() or "utf-8"
        text = cast("bytes", raw_payload).decode(charset, errors="replace")

        if content_type == "text/html" and html_body is None:
            html_body = text
        elif content_type == "text/plain" and text_body is None:
            text_body = text

    return html_body, text_body
