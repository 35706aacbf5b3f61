"""
Statement ingestion and reconciliation utilities.

This package turns broker and registrar exports (CSV/XLSX files with no
fixed schema) into reconciled holdings, portfolio metrics and insights.
See ``statement_utils/ingestion.py`` for the per-file parser and
``statement_utils/service.py`` for the full upload flow.
"""

from .errors import ContextStoreError, EmptyExtractionError, IngestionError, StatementDecodeError
from .ingestion import ParsedStatement, parse_statement
from .insights import generate_insights
from .metrics import calculate_metrics
from .models import (
    Account,
    AccountSource,
    Holding,
    Insight,
    Instrument,
    InstrumentType,
    PortfolioMetrics,
    ReconciledContext,
)
from .reconcile import merge_records, reconcile
from .service import ingest_file, ingest_statement
from .store import ContextStore

__version__ = "1.0.0"

__all__ = [
    "Account",
    "AccountSource",
    "ContextStore",
    "ContextStoreError",
    "EmptyExtractionError",
    "Holding",
    "IngestionError",
    "Insight",
    "Instrument",
    "InstrumentType",
    "ParsedStatement",
    "PortfolioMetrics",
    "ReconciledContext",
    "StatementDecodeError",
    "calculate_metrics",
    "generate_insights",
    "ingest_file",
    "ingest_statement",
    "merge_records",
    "parse_statement",
    "reconcile",
]
