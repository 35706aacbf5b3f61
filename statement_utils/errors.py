"""
Exception hierarchy for statement ingestion.

Everything raised deliberately by the package inherits from
``IngestionError`` so callers can present a single blocking error to the
user while still telling "the file is unreadable" apart from "the file was
read but nothing in it looked like a holding".
"""


class IngestionError(Exception):
    """Base exception class for statement ingestion errors."""


class StatementDecodeError(IngestionError):
    """Raised when the uploaded bytes cannot be read as a spreadsheet at all."""


class EmptyExtractionError(IngestionError):
    """Raised when a statement decodes but yields no investment records."""


class ContextStoreError(IngestionError):
    """Raised when the reconciled context cannot be written to its store."""
