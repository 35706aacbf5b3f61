"""
statement_utils/extractor.py

Row-level extraction and instrument classification.

Given the active header map for a block of rows, ``extract_holding`` turns
one data row into a ``Holding`` or decides that the row is not data
(blank, subtotal, disclaimer).  Numeric cells in broker exports carry
currency symbols, Indian digit grouping and trailing annotations, so
``parse_number`` strips everything except digits, ``.`` and ``-`` and never
raises: a malformed cell contributes ``0``.

Instrument type is inferred from ISIN prefix, sheet name, the type-hint
column and the symbol text, in that order of trust.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from .config import DEFAULT_FUND_KEYWORDS
from .logging_utils import get_logger
from .models import Holding, Instrument, InstrumentType

logger = get_logger(__name__)

FUND_ISIN_PREFIX = "INF"
EQUITY_ISIN_PREFIX = "INE"
FUND_SHEET_MARKERS = ("mutual", "fund")
LONG_SYMBOL_LENGTH = 22
SUMMARY_ROW_MARKER = "total"

_NON_NUMERIC = re.compile(r"[^\d.\-]", re.ASCII)
_LEADING_FLOAT = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def parse_number(value: Any) -> float:
    """Coerce a raw cell to a float, degrading to ``0.0`` instead of raising.

    Examples:
        >>> parse_number("₹1,23,456.78")
        123456.78
        >>> parse_number("-")
        0.0
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return 0.0
    if isinstance(value, (int, float, np.number)):
        number = float(value)
        return number if np.isfinite(number) else 0.0
    cleaned = _NON_NUMERIC.sub("", str(value))
    # Leading-prefix parse: "12-2024" reads as 12 rather than failing.
    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def cell_text(value: Any) -> str:
    """Trimmed text of a cell; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float):
        if not np.isfinite(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def normalize_symbol(symbol: str) -> str:
    """Lower-case a symbol and collapse whitespace runs to underscores."""
    return _WHITESPACE.sub("_", symbol.strip()).lower()


def _cell(row: Sequence[Any], header: Mapping[str, int], field: str) -> Any:
    idx = header.get(field)
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def infer_instrument_type(
    isin: str,
    sheet_name: str,
    type_hint: str,
    symbol: str,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
) -> InstrumentType:
    """Classify a row as STOCK or MUTUAL_FUND.

    Priority: fund ISIN, fund-named sheet, equity ISIN, fund keywords in
    the type hint or symbol (or an unusually long symbol), then STOCK.
    """
    isin = (isin or "").upper()
    sheet = (sheet_name or "").lower()
    if isin.startswith(FUND_ISIN_PREFIX):
        return InstrumentType.MUTUAL_FUND
    if any(marker in sheet for marker in FUND_SHEET_MARKERS):
        return InstrumentType.MUTUAL_FUND
    if isin.startswith(EQUITY_ISIN_PREFIX):
        return InstrumentType.STOCK
    hint = (type_hint or "").lower()
    sym = (symbol or "").lower()
    if any(k in hint or k in sym for k in fund_keywords):
        return InstrumentType.MUTUAL_FUND
    if len(symbol or "") > LONG_SYMBOL_LENGTH:
        return InstrumentType.MUTUAL_FUND
    return InstrumentType.STOCK


def sector_for(instrument_type: InstrumentType) -> str:
    return "Direct Equity" if instrument_type is InstrumentType.STOCK else "Managed Assets"


def extract_holding(
    header: Mapping[str, int],
    row: Sequence[Any],
    sheet_name: str,
    account_id: str,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
) -> Optional[Holding]:
    """Build a holding from one data row, or return None for non-data rows.

    Args:
        header: Active field -> column map from the header locator.
        row: Raw cells of the data row.
        sheet_name: Worksheet name, used for type inference.
        account_id: Owning account identifier.
        fund_keywords: Words marking a managed fund.

    Returns:
        The holding, with ``allocation_percentage`` left at 0 for the
        metrics aggregator to fill in.
    """
    raw_symbol = cell_text(_cell(row, header, "symbol"))
    if len(raw_symbol) < 2 or SUMMARY_ROW_MARKER in raw_symbol.lower():
        return None

    quantity = parse_number(_cell(row, header, "quantity"))
    average_price = parse_number(_cell(row, header, "avgPrice"))
    if quantity == 0 and average_price == 0:
        return None

    isin = cell_text(_cell(row, header, "isin")).upper() if "isin" in header else ""
    ltp = parse_number(_cell(row, header, "ltp")) if "ltp" in header else average_price
    pnl_from_file = parse_number(_cell(row, header, "pnl")) if "pnl" in header else 0.0
    value_from_file = parse_number(_cell(row, header, "currentValue")) if "currentValue" in header else 0.0

    invested = quantity * average_price
    current_value = value_from_file if value_from_file > 0 else quantity * ltp
    pnl = pnl_from_file if pnl_from_file != 0 else current_value - invested
    if current_value == 0 and pnl != 0:
        current_value = invested + pnl
    current_price = current_value / quantity if quantity > 0 else ltp

    type_hint = cell_text(_cell(row, header, "type")) if "type" in header else ""
    instrument_type = infer_instrument_type(isin, sheet_name, type_hint, raw_symbol, fund_keywords)

    return Holding(
        id=f"{account_id}_{normalize_symbol(raw_symbol)}",
        account_id=account_id,
        instrument=Instrument(
            symbol=raw_symbol,
            isin=isin,
            name=raw_symbol,
            type=instrument_type,
            sector=sector_for(instrument_type),
        ),
        quantity=quantity,
        average_price=average_price,
        current_price=current_price,
        current_value=current_value,
        pnl=pnl,
        pnl_percentage=(pnl / invested) * 100 if invested > 0 else 0.0,
        allocation_percentage=0.0,
    )


__all__ = [
    "parse_number",
    "cell_text",
    "normalize_symbol",
    "infer_instrument_type",
    "sector_for",
    "extract_holding",
]
