"""
statement_utils/export.py

Export of the reconciled context as flat tables.

Accounts, holdings, the metrics snapshot and insights are each flattened
into a pandas DataFrame and written either as sheets of one ``.xlsx``
workbook (via ``openpyxl``) or as one CSV file per table.  File names take
the form ``<Report_Name>_<DDMMYYYY>.xlsx``; spaces in the report name are
replaced with underscores.
"""

from __future__ import annotations

import datetime as _dt
import os
import re
from typing import Dict, List, Optional

import pandas as pd

from .logging_utils import _audit, get_logger
from .models import ReconciledContext

logger = get_logger(__name__)

SUPPORTED_FORMATS = {"xlsx", "csv"}


def context_to_frames(context: ReconciledContext) -> Dict[str, pd.DataFrame]:
    """Flatten a context into one DataFrame per exported sheet."""
    account_names = {a.id: a.name for a in context.accounts}
    accounts = pd.DataFrame(
        [
            {
                "ID": a.id,
                "Name": a.name,
                "Source": a.source.value,
                "LastSynced": a.last_synced,
            }
            for a in context.accounts
        ],
        columns=["ID", "Name", "Source", "LastSynced"],
    )
    holdings = pd.DataFrame(
        [
            {
                "Account": account_names.get(h.account_id, h.account_id),
                "Symbol": h.instrument.symbol,
                "ISIN": h.instrument.isin,
                "Type": h.instrument.type.value,
                "Sector": h.instrument.sector or "",
                "Quantity": h.quantity,
                "AveragePrice": h.average_price,
                "CurrentPrice": h.current_price,
                "Invested": h.invested_value,
                "CurrentValue": h.current_value,
                "PnL": h.pnl,
                "PnLPercentage": round(h.pnl_percentage, 2),
                "AllocationPercentage": h.allocation_percentage,
            }
            for h in context.holdings
        ],
        columns=[
            "Account", "Symbol", "ISIN", "Type", "Sector", "Quantity", "AveragePrice",
            "CurrentPrice", "Invested", "CurrentValue", "PnL", "PnLPercentage", "AllocationPercentage",
        ],
    )
    m = context.metrics
    metric_rows = [
        ("Total Invested", m.total_invested),
        ("Current Value", m.current_value),
        ("Total P&L", m.total_pnl),
        ("Total P&L %", round(m.total_pnl_percentage, 2)),
        ("XIRR", m.xirr),
    ]
    metric_rows += [(f"Type: {label}", value) for label, value in m.by_asset_type.items()]
    metric_rows += [(f"Sector: {label}", value) for label, value in m.by_sector.items()]
    metrics = pd.DataFrame(metric_rows, columns=["Metric", "Value"])
    insights = pd.DataFrame(
        [
            {
                "Observation": i.observation,
                "Evidence": i.evidence,
                "SuggestedAction": i.suggested_action or "",
                "Confidence": i.confidence_level,
            }
            for i in context.insights
        ],
        columns=["Observation", "Evidence", "SuggestedAction", "Confidence"],
    )
    return {"Accounts": accounts, "Holdings": holdings, "Metrics": metrics, "Insights": insights}


def export_filename(report_name: str, when: Optional[_dt.date] = None, ext: str = "xlsx") -> str:
    when = when or _dt.date.today()
    sanitized = re.sub(r"\s+", "_", report_name.strip())
    return f"{sanitized}_{when.strftime('%d%m%Y')}.{ext}"


def export_context(
    context: ReconciledContext,
    output_dir: str = "./out",
    report_name: str = "Investment_Portfolio",
    fmt: str = "xlsx",
    when: Optional[_dt.date] = None,
) -> List[str]:
    """Write the context to ``output_dir`` and return the written paths.

    Args:
        context: Context to export.
        output_dir: Destination directory; ``OUTPUT_DIR`` overrides it and
            it is created if missing.
        report_name: File name prefix.
        fmt: ``"xlsx"`` for one workbook, ``"csv"`` for one file per sheet.
        when: Date used in the file name (default today).

    Raises:
        ValueError: For an unsupported ``fmt``.
    """
    fmt = fmt.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    out_dir_env = os.getenv("OUTPUT_DIR")
    if out_dir_env:
        output_dir = out_dir_env
    os.makedirs(output_dir, exist_ok=True)
    frames = context_to_frames(context)
    paths: List[str] = []
    if fmt == "xlsx":
        path = os.path.join(output_dir, export_filename(report_name, when, "xlsx"))
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet, frame in frames.items():
                frame.to_excel(writer, sheet_name=sheet, index=False)
        paths.append(path)
    else:
        base = export_filename(report_name, when, "csv")[: -len(".csv")]
        for sheet, frame in frames.items():
            path = os.path.join(output_dir, f"{base}_{sheet.lower()}.csv")
            frame.to_csv(path, index=False)
            paths.append(path)
    _audit(f"Exported context to {', '.join(paths)}")
    return paths


__all__ = ["context_to_frames", "export_filename", "export_context"]
