"""
statement_utils/ingestion.py

Statement parsing: decode -> locate headers -> extract rows -> deduplicate.

``parse_statement`` is the per-upload entry point.  It produces one
``Account`` (derived from the source tag) and the deduplicated holdings
found across every worksheet of the file.  A workbook often repeats the
same instruments on a summary tab and a detail tab, so holdings are
collapsed by normalised symbol before they leave this module.

Failure semantics: undecodable bytes raise ``StatementDecodeError``; a
file that decodes but yields no holdings raises ``EmptyExtractionError``
so callers can tell "no data found" apart from "nothing changed".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .config import DEFAULT_FUND_KEYWORDS, DEFAULT_KEYWORD_MAPPING
from .decoder import Worksheet, decode_workbook
from .errors import EmptyExtractionError
from .extractor import extract_holding, normalize_symbol
from .header_locator import is_skipped_sheet, iter_data_rows
from .logging_utils import _audit, get_logger
from .models import Account, AccountSource, Holding, account_id_for, account_name_for, utc_now_iso

logger = get_logger(__name__)

EMPTY_EXTRACTION_MESSAGE = "No investment records found in the file."


@dataclass
class ParsedStatement:
    account: Account
    holdings: List[Holding]


def build_account(source: "AccountSource | str", now: Optional[str] = None) -> Account:
    """Create the account record for an upload from ``source``."""
    source = AccountSource.parse(source)
    return Account(
        id=account_id_for(source),
        name=account_name_for(source),
        source=source,
        last_synced=now or utc_now_iso(),
    )


def deduplicate_holdings(holdings: Iterable[Holding]) -> List[Holding]:
    """Keep one holding per normalised symbol.

    The first occurrence wins unless a later one carries an ISIN and the
    kept one does not.  The replacement keeps the first occurrence's
    position in the output.
    """
    kept: Dict[str, Holding] = {}
    for holding in holdings:
        key = normalize_symbol(holding.instrument.symbol)
        existing = kept.get(key)
        if existing is None:
            kept[key] = holding
        elif holding.instrument.isin and not existing.instrument.isin:
            logger.debug(f"Replacing {existing.instrument.symbol} with record carrying ISIN {holding.instrument.isin}")
            kept[key] = holding
    return list(kept.values())


def extract_worksheet(
    worksheet: Worksheet,
    account_id: str,
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
) -> List[Holding]:
    """Extract every holding row of one worksheet, in row order."""
    holdings: List[Holding] = []
    for header, row in iter_data_rows(worksheet, keyword_map):
        holding = extract_holding(header, row, worksheet.name, account_id, fund_keywords)
        if holding is not None:
            holdings.append(holding)
    return holdings


def extract_holdings(
    worksheets: Iterable[Worksheet],
    account_id: str,
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
) -> List[Holding]:
    """Extract and deduplicate holdings across all worksheets of a file."""
    found: List[Holding] = []
    for worksheet in worksheets:
        if is_skipped_sheet(worksheet.name):
            logger.debug(f"Skipping sheet {worksheet.name}")
            continue
        sheet_holdings = extract_worksheet(worksheet, account_id, keyword_map, fund_keywords)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Sheet {worksheet.name}: {len(sheet_holdings)} holding row(s)")
        found.extend(sheet_holdings)
    unique = deduplicate_holdings(found)
    if len(unique) != len(found):
        _audit(f"Collapsed {len(found) - len(unique)} duplicate holding row(s)")
    return unique


def parse_statement(
    data: bytes,
    source: "AccountSource | str",
    filename: Optional[str] = None,
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
) -> ParsedStatement:
    """Parse one uploaded statement into an account and its holdings.

    Args:
        data: Raw file bytes.
        source: Statement provider tag.
        filename: Original file name, used to choose the decoder.
        keyword_map: Header keyword table; defaults to the built-in one.
        fund_keywords: Words marking a managed fund.

    Raises:
        StatementDecodeError: The bytes are not a readable spreadsheet.
        EmptyExtractionError: No holding rows were recognised.
    """
    account = build_account(source)
    logger.info(f"Processing statement {filename or '<upload>'} for {account.source.value}")
    worksheets = decode_workbook(data, filename)
    holdings = extract_holdings(worksheets, account.id, keyword_map or DEFAULT_KEYWORD_MAPPING, fund_keywords)
    if not holdings:
        logger.error(f"No holdings recognised in {filename or '<upload>'}")
        raise EmptyExtractionError(EMPTY_EXTRACTION_MESSAGE)
    _audit(f"Extracted {len(holdings)} holding(s) for account {account.id}")
    return ParsedStatement(account=account, holdings=holdings)


__all__ = [
    "ParsedStatement",
    "EMPTY_EXTRACTION_MESSAGE",
    "build_account",
    "deduplicate_holdings",
    "extract_worksheet",
    "extract_holdings",
    "parse_statement",
]
