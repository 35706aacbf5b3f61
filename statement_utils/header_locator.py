"""
statement_utils/header_locator.py

Heuristic header detection for schema-less statement worksheets.

Broker exports rarely start at the first row: logos, client details and
disclaimers come first, and a single sheet may hold several tables (one
for equities, one for funds).  Instead of assuming a fixed layout each row
is tested against a keyword table (see ``config.load_keyword_mapping``).
A row whose cells claim the ``symbol`` field and at least one of
``quantity`` or ``avgPrice`` is accepted as a header row, and its
field -> column assignment applies to every following row until the next
header row.

Matching is loose: a cell claims a field when its lower-cased
text equals a pattern, contains it, or is contained by it.  Each field is
claimed by the leftmost matching column only.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_KEYWORD_MAPPING
from .decoder import Worksheet
from .logging_utils import get_logger

logger = get_logger(__name__)

REQUIRED_FIELD = "symbol"
QUANTITY_FIELDS = ("quantity", "avgPrice")
SKIPPED_SHEET_MARKERS = ("help", "about")
MIN_ROW_CELLS = 2

HeaderMap = Dict[str, int]


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip().lower()


def _pattern_matches(cell_text: str, patterns: Sequence[str]) -> bool:
    return any(cell_text == p or p in cell_text or cell_text in p for p in patterns)


def is_skipped_sheet(sheet_name: str) -> bool:
    """Return True for help/about sheets that never carry holdings."""
    name = (sheet_name or "").lower()
    return any(marker in name for marker in SKIPPED_SHEET_MARKERS)


def assign_columns(row: Sequence[Any], keyword_map: Optional[Mapping[str, Sequence[str]]] = None) -> HeaderMap:
    """Map semantic fields to column indices for a candidate header row.

    Columns are visited left to right; for each non-empty cell every field
    that is still unclaimed is tested in keyword-table order, so one cell
    may claim several fields but a field is never reassigned within the
    row.
    """
    keyword_map = keyword_map or DEFAULT_KEYWORD_MAPPING
    indices: HeaderMap = {}
    for col, cell in enumerate(row):
        cell_text = _cell_text(cell)
        if not cell_text:
            continue
        for field, patterns in keyword_map.items():
            if field in indices:
                continue
            if _pattern_matches(cell_text, patterns):
                indices[field] = col
    return indices


def score_header_row(indices: Mapping[str, int]) -> int:
    """Weight core fields twice as heavily as optional ones."""
    return sum(2 if field in (REQUIRED_FIELD,) + QUANTITY_FIELDS else 1 for field in indices)


def is_header(indices: Mapping[str, int]) -> bool:
    return REQUIRED_FIELD in indices and any(f in indices for f in QUANTITY_FIELDS)


def match_header_row(
    row: Sequence[Any],
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
) -> Optional[HeaderMap]:
    """Return the field -> column map if ``row`` is a header row, else None."""
    if not row or len(row) < MIN_ROW_CELLS:
        return None
    indices = assign_columns(row, keyword_map)
    return indices if is_header(indices) else None


def iter_data_rows(
    worksheet: Worksheet,
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
) -> Iterator[Tuple[HeaderMap, List[Any]]]:
    """Yield ``(header_map, row)`` for each candidate data row of a sheet.

    Rows before the first header are ignored, rows shorter than two cells
    are skipped, and a newly found header row replaces the active map.
    Help/about sheets yield nothing.
    """
    if is_skipped_sheet(worksheet.name):
        logger.debug(f"Skipping non-data sheet {worksheet.name}")
        return
    active: Optional[HeaderMap] = None
    for row_no, row in enumerate(worksheet.rows):
        if not row or len(row) < MIN_ROW_CELLS:
            continue
        header = match_header_row(row, keyword_map)
        if header is not None:
            active = header
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    f"Sheet {worksheet.name}: header at row {row_no + 1} "
                    f"(score {score_header_row(header)}) -> {header}"
                )
            continue
        if active is None:
            continue
        yield active, list(row)


def locate_headers(
    worksheet: Worksheet,
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[Tuple[int, HeaderMap]]:
    """Return ``(row_index, header_map)`` for every header row in a sheet."""
    if is_skipped_sheet(worksheet.name):
        return []
    found: List[Tuple[int, HeaderMap]] = []
    for row_no, row in enumerate(worksheet.rows):
        header = match_header_row(row, keyword_map)
        if header is not None:
            found.append((row_no, header))
    return found


__all__ = [
    "HeaderMap",
    "assign_columns",
    "score_header_row",
    "is_header",
    "is_skipped_sheet",
    "match_header_row",
    "iter_data_rows",
    "locate_headers",
]
