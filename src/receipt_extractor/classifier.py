"""Receipt / non-receipt classification for inbound email."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from sklearn.feature_extraction.text import CountVectorizer
from sklearn.naive_bayes import MultinomialNB
from sklearn.pipeline import make_pipeline

from receipt_extractor.models import ClassificationSignals
from receipt_extractor.vendors import RECEIPT_IDENTIFIERS, mentions_vendor_keyword

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sklearn.pipeline import Pipeline

    from receipt_extractor.models import EmailMessage, ReceiptLabel

logger = logging.getLogger(__name__)

RECEIPT_EXAMPLES: tuple[str, ...] = (
    "your order has shipped",
    "order confirmation",
    "receipt for your purchase",
    "payment confirmation",
    "invoice",
    "transaction receipt",
    "thank you for your order",
    "your payment was successful",
    "order details",
    "your receipt from",
)

NON_RECEIPT_EXAMPLES: tuple[str, ...] = (
    "meeting invitation",
    "newsletter",
    "account security",
    "password reset",
    "limited time offer",
    "promotion",
    "update your preferences",
    "verify your account",
)

# Only the head of the body is fed to the model.
BODY_PREFIX_CHARS = 500


@dataclass(frozen=True)
class ReceiptClassifier:
    """A trained text model plus the keyword heuristics it backs up.

    Build instances with :func:`train_classifier`; an instance is never
    retrained.
    """

    model: Pipeline

    def predict_label(self, text: str) -> ReceiptLabel:
        """Return the model's label for ``text``."""
        label = self.model.predict([text])[0]
        return cast("ReceiptLabel", str(label))

    def signals(self, email: EmailMessage) -> ClassificationSignals:
        """Compute every signal used by the receipt decision."""
        sender = (email.sender or "").lower()
        subject = (email.subject or "").lower()
        body = (email.body or "").lower()

        return ClassificationSignals(
            from_vendor_match=mentions_vendor_keyword(sender),
            subject_vendor_match=mentions_vendor_keyword(subject),
            has_receipt_identifier=any(word in subject for word in RECEIPT_IDENTIFIERS),
            bayes_label=self.predict_label(f"{subject} {body[:BODY_PREFIX_CHARS]}"),
        )

    def classify(self, email: EmailMessage) -> bool:
        """Return True if ``email`` looks like a purchase receipt."""
        signals = self.signals(email)
        logger.debug("Signals for %s: %s", email.source_id, signals)
        return signals.is_receipt


def train_classifier(
    receipt_examples: Sequence[str] = RECEIPT_EXAMPLES,
    non_receipt_examples: Sequence[str] = NON_RECEIPT_EXAMPLES,
) -> ReceiptClassifier:
    """Train a naive Bayes model on example phrases.

    Both example sets must be non-empty.
    """
    if not receipt_examples or not non_receipt_examples:
        msg = "Both receipt and non-receipt examples are required"
        raise ValueError(msg)

    documents = [*receipt_examples, *non_receipt_examples]
    labels = ["receipt"] * len(receipt_examples)
    labels += ["non-receipt"] * len(non_receipt_examples)

    model = make_pipeline(CountVectorizer(), MultinomialNB())
    model.fit(documents, labels)
    logger.debug(
        "Trained receipt classifier on %d receipt and %d non-receipt examples",
        len(receipt_examples),
        len(non_receipt_examples),
    )
    return ReceiptClassifier(model=model)
