"""
statement_utils/decoder.py

Tabular decoding of uploaded statement files.

Broker and registrar exports arrive as CSV text or Excel workbooks.  This
module turns the raw bytes into a list of ``Worksheet`` objects, each a
named grid of raw cell values with ``""`` for empty cells.  No schema is
assumed here: header detection happens later, row by row.

Excel workbooks are read with ``pandas.ExcelFile`` (``openpyxl`` for the
OOXML formats).  If Excel parsing fails and the bytes are plain text, the
content is re-read as CSV, which rescues mislabelled ``.xlsx`` downloads
that are really comma-separated text.  Bytes that are neither raise
``StatementDecodeError``.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

import pandas as pd

from .errors import StatementDecodeError
from .logging_utils import _audit, get_logger

logger = get_logger(__name__)

CSV_EXTENSIONS = {".csv", ".txt"}
CSV_SHEET_NAME = "Sheet1"
_TEXT_ENCODINGS = ("utf-8-sig", "cp1252")


@dataclass
class Worksheet:
    """A named grid of raw cell values."""

    name: str
    rows: List[List[Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def _decode_text(data: bytes) -> Optional[str]:
    """Return ``data`` as text, or ``None`` if it does not look like text."""
    if b"\x00" in data:
        return None
    for encoding in _TEXT_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return None


def read_csv_bytes(data: bytes, sheet_name: str = CSV_SHEET_NAME) -> List[Worksheet]:
    """Read CSV bytes into a single worksheet.

    Blank lines are preserved as empty rows so that row positions match
    what a spreadsheet application would show.

    Raises:
        StatementDecodeError: If the bytes are not text or the CSV
            reader rejects them.
    """
    text = _decode_text(data)
    if text is None:
        raise StatementDecodeError("File is not readable as CSV text")
    try:
        rows = [list(row) for row in csv.reader(io.StringIO(text, newline=""))]
    except csv.Error as exc:
        raise StatementDecodeError(f"Malformed CSV content: {exc}") from exc
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"CSV read complete: {len(rows)} row(s) decoded")
    return [Worksheet(name=sheet_name, rows=rows)]


def read_excel_bytes(data: bytes) -> List[Worksheet]:
    """Read every sheet of an Excel workbook into worksheets.

    Cells are read without type coercion (``dtype=object``) so numeric
    cells stay numeric; missing cells become ``""``.

    Raises:
        StatementDecodeError: If the workbook cannot be opened.
    """
    engine = "openpyxl" if data[:2] == b"PK" else None
    try:
        xls = pd.ExcelFile(io.BytesIO(data), engine=engine)
    except Exception as exc:
        raise StatementDecodeError(f"Unable to open workbook: {exc}") from exc
    worksheets: List[Worksheet] = []
    with xls:
        for sheet_name in xls.sheet_names:
            try:
                df_sheet = xls.parse(sheet_name=sheet_name, header=None, dtype=object)
            except Exception as exc:
                logger.warning(f"Failed to parse sheet {sheet_name}: {exc}")
                continue
            grid = df_sheet.astype(object).where(pd.notna(df_sheet), "")
            worksheets.append(Worksheet(name=str(sheet_name), rows=grid.values.tolist()))
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"Sheet {sheet_name}: {len(df_sheet)} row(s) x {df_sheet.shape[1]} column(s)")
    return worksheets


def decode_workbook(data: bytes, filename: Optional[str] = None) -> List[Worksheet]:
    """Decode uploaded statement bytes into worksheets.

    Args:
        data: Raw file content.
        filename: Original file name; only its extension is used to pick
            the CSV or Excel reader first.

    Returns:
        The worksheets in workbook order.

    Raises:
        StatementDecodeError: If the content is empty or cannot be read as
            either a workbook or CSV text.
    """
    if not data:
        raise StatementDecodeError("File is empty")
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in CSV_EXTENSIONS:
        worksheets = read_csv_bytes(data)
    else:
        try:
            worksheets = read_excel_bytes(data)
        except StatementDecodeError as exc:
            # Mislabelled .xlsx downloads are often CSV text.
            if _decode_text(data) is None:
                logger.error(f"Failed to decode {filename or 'upload'}: {exc}")
                raise
            logger.debug(f"Excel read failed for {filename or 'upload'}, falling back to CSV: {exc}")
            worksheets = read_csv_bytes(data)
    _audit(f"Decoded {filename or 'upload'} into {len(worksheets)} worksheet(s)")
    return worksheets


__all__ = [
    "Worksheet",
    "decode_workbook",
    "read_csv_bytes",
    "read_excel_bytes",
]
