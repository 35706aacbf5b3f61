#!/usr/bin/env python3
"""
run_statement_ingestion.py

Caller/orchestrator for the statement ingestion utilities.

Each input file is parsed for the chosen source, reconciled into the
stored context (other sources' holdings are left untouched) and saved.
Metrics and insights are rebuilt on every upload and printed as JSON.

Usage::

    python run_statement_ingestion.py <input-file> [<input-file> ...] [--source SOURCE]
                                      [--config CONFIG] [--store STORE] [--export {xlsx,csv}]
                                      [--outdir OUTDIR] [--clear] [--show] [--debug] [--show-audit]

Configuration keys considered (default_settings.json):
- CONTEXT_STORE
- OUTPUT_DIR
- DEFAULT_SOURCE
- KEYWORD_MAPPING_CONFIG
- DEBUG
- INSIGHTS: {"EQUITY_CONCENTRATION_PCT": 50, "MANAGED_TILT_PCT": 50, "DRAWDOWN_PCT": -10}
  (add "SINGLE_HOLDING_PCT" to enable the largest-position rule)
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from statement_utils.config import (
    apply_env_from_settings,
    load_fund_keywords,
    load_keyword_mapping,
    load_settings,
)
from statement_utils.errors import IngestionError
from statement_utils.export import export_context
from statement_utils.insights import default_rules
from statement_utils.logging_utils import configure_logging, get_audit_log
from statement_utils.models import AccountSource, ReconciledContext
from statement_utils.service import ingest_file
from statement_utils.store import ContextStore


# -------------------------- helpers --------------------------

def _summary(context: ReconciledContext) -> Dict[str, Any]:
    return {
        "timestamp": context.timestamp,
        "accounts": [a.id for a in context.accounts],
        "holdings": len(context.holdings),
        "metrics": context.metrics.to_dict(),
        "insights": [i.to_dict() for i in context.insights],
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Statement ingestion and reconciliation")
    parser.add_argument("input_files", nargs="*", help="Statement files (.csv, .xlsx) to ingest.")
    parser.add_argument(
        "--source",
        default=None,
        type=str.upper,
        choices=[s.value for s in AccountSource],
        help="Source the files come from (default: DEFAULT_SOURCE setting).",
    )
    parser.add_argument("--config", default="config/default_settings.json", help="Path to settings JSON")
    parser.add_argument("--store", default=None, help="Path to the context JSON store")
    parser.add_argument("--export", choices=["xlsx", "csv"], default=None, help="Export the context after ingestion")
    parser.add_argument("--outdir", default=None, help="Override output directory for exports")
    parser.add_argument("--clear", action="store_true", help="Clear the stored context before ingesting")
    parser.add_argument("--show", action="store_true", help="Print the stored context summary")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--show-audit", action="store_true", help="Print audit log at the end")
    return parser


# -------------------------- main --------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    settings = load_settings(args.config)
    if args.outdir:
        settings["OUTPUT_DIR"] = args.outdir
    if args.store:
        settings["CONTEXT_STORE"] = args.store
    if args.debug:
        settings["DEBUG"] = True
    apply_env_from_settings(settings)
    configure_logging(debug=bool(args.debug or str(settings.get("DEBUG", "")).lower() == "true"))

    if not args.input_files and not (args.clear or args.show or args.export):
        sys.stderr.write("No input files provided.\n")
        return 2

    try:
        source = AccountSource.parse(args.source or settings.get("DEFAULT_SOURCE") or AccountSource.AGENT.value)
    except ValueError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 3

    store = ContextStore(settings.get("CONTEXT_STORE"))
    if args.clear:
        store.clear()

    keyword_map = load_keyword_mapping(settings.get("KEYWORD_MAPPING_CONFIG"))
    fund_keywords = load_fund_keywords(settings.get("KEYWORD_MAPPING_CONFIG"))
    rules = default_rules(settings.get("INSIGHTS"))

    failures = 0
    for file_path in args.input_files:
        try:
            ingest_file(store, file_path, source, keyword_map, fund_keywords, rules)
        except (IngestionError, FileNotFoundError) as exc:
            failures += 1
            sys.stderr.write(f"Error: failed to ingest {file_path}: {exc}\n")

    if args.input_files and failures == len(args.input_files):
        return 3

    context = store.load()
    if args.export:
        paths = export_context(context, settings.get("OUTPUT_DIR") or "./out", fmt=args.export)
        print(f"Exported: {', '.join(paths)}")

    print(json.dumps(_summary(context), indent=2))

    if args.show_audit:
        for ts, msg in get_audit_log():
            print(f"[{ts}] {msg}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
