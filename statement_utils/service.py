"""Upload flow: parse a statement and fold it into the stored context."""

from __future__ import annotations

import os
from typing import Mapping, Optional, Sequence

from .config import DEFAULT_FUND_KEYWORDS
from .insights import InsightRule
from .ingestion import parse_statement
from .logging_utils import get_logger
from .models import AccountSource, ReconciledContext
from .reconcile import reconcile
from .store import ContextStore

logger = get_logger(__name__)


def ingest_statement(
    store: ContextStore,
    data: bytes,
    source: "AccountSource | str",
    filename: Optional[str] = None,
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
    rules: Optional[Sequence[InsightRule]] = None,
) -> ReconciledContext:
    """Parse ``data``, reconcile it with the stored context and save.

    The whole cycle runs under the store's lock.  Parsing errors propagate
    before anything is written, so a failed upload leaves the stored
    context unchanged.
    """
    with store.transaction() as current:
        parsed = parse_statement(data, source, filename, keyword_map, fund_keywords)
        updated = reconcile(current, parsed.account, parsed.holdings, rules)
        saved = store.save(updated)
    logger.info(
        f"Ingested {len(parsed.holdings)} holding(s) from {filename or '<upload>'} into {parsed.account.id}"
    )
    return saved


def ingest_file(
    store: ContextStore,
    path: str,
    source: "AccountSource | str",
    keyword_map: Optional[Mapping[str, Sequence[str]]] = None,
    fund_keywords: Sequence[str] = DEFAULT_FUND_KEYWORDS,
    rules: Optional[Sequence[InsightRule]] = None,
) -> ReconciledContext:
    """Read ``path`` from disk and ingest it.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    if not os.path.isfile(path):
        logger.error(f"Input file not found: {path}")
        raise FileNotFoundError(f"Input file not found: {path}")
    with open(path, "rb") as f:
        data = f.read()
    return ingest_statement(store, data, source, os.path.basename(path), keyword_map, fund_keywords, rules)


__all__ = ["ingest_statement", "ingest_file"]
