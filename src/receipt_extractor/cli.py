"""CLI entry point for receipt-extractor."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from receipt_extractor.adapters.eml import EmlDirectoryAdapter, load_eml
from receipt_extractor.config import get_inbox_path, get_ocr_config
from receipt_extractor.errors import AcquisitionError
from receipt_extractor.ocr import extract_text_from_image
from receipt_extractor.processor import ReceiptProcessor

if TYPE_CHECKING:
    from pydantic import BaseModel

_EML_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Receipt Extractor: find receipts and pull out their totals."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("path", type=_EML_FILE)
def classify(path: Path) -> None:
    """Report whether an .eml file is a receipt and why."""
    email = load_eml(path)
    processor = ReceiptProcessor()
    signals = processor.classifier.signals(email)
    _echo_json(
        {
            "source_id": email.source_id,
            "is_receipt": signals.is_receipt,
            "from_vendor_match": signals.from_vendor_match,
            "subject_vendor_match": signals.subject_vendor_match,
            "has_receipt_identifier": signals.has_receipt_identifier,
            "bayes_label": signals.bayes_label,
        }
    )


@cli.command()
@click.argument("path", type=_EML_FILE)
def process(path: Path) -> None:
    """Extract a receipt record from an .eml file."""
    result = ReceiptProcessor().process(load_eml(path))
    _echo_model(result)


@cli.command()
@click.argument(
    "directory",
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
def scan(directory: Path | None) -> None:
    """Process every .eml file in a directory, one JSON record per receipt."""
    adapter = EmlDirectoryAdapter(directory or get_inbox_path())
    processor = ReceiptProcessor()
    found = 0
    for email in adapter.fetch_unprocessed(set()):
        result = processor.process(email)
        if result.is_receipt and result.data is not None:
            found += 1
            click.echo(result.data.model_dump_json())
    click.echo(f"{found} receipt(s) found.", err=True)


@cli.command()
@click.argument("url")
@click.option("--extract", is_flag=True, help="Print an extracted record, not text.")
def ocr(url: str, extract: bool) -> None:
    """Run OCR on an image URL."""
    config = get_ocr_config()
    try:
        if extract:
            _echo_model(ReceiptProcessor().process_image(url, config=config))
        else:
            click.echo(extract_text_from_image(url, config=config))
    except AcquisitionError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo_model(model: BaseModel) -> None:
    click.echo(model.model_dump_json(indent=2))


def _echo_json(data: dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2))
