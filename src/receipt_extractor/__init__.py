"""Receipt classification and field extraction for email and OCR text."""
