"""
===============================================================================
 Module: metrics.py
 Project: Statement Ingestion & Reconciliation
 Location: ProjectRoot/statement_utils/
 Description:
   Portfolio metrics aggregation over a reconciled holdings list: invested
   capital, current value, absolute and percentage P&L, allocation
   breakdowns by instrument type and by sector, and per-holding allocation
   percentages.  Risk metrics and XIRR are placeholders; no price history
   is available to compute them.
 Dependencies: pandas; respects LOG_DIR, DEBUG, AUDIT envs
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import pandas as pd

from .extractor import sector_for
from .logging_utils import _audit, get_logger
from .models import Holding, PortfolioMetrics, RiskMetrics

logger = get_logger(__name__)

# Fixed until a returns history is tracked.
PLACEHOLDER_RISK = RiskMetrics(beta=0.82, standard_deviation=10.5, sharpe_ratio=1.45)


def holdings_frame(holdings: Sequence[Holding]) -> pd.DataFrame:
    """Flatten holdings into a frame with the columns the aggregator needs."""
    records = [
        {
            "id": h.id,
            "type": h.instrument.type.value,
            "sector": sector_for(h.instrument.type),
            "invested": h.quantity * h.average_price,
            "current_value": h.current_value,
            "pnl": h.pnl,
        }
        for h in holdings
    ]
    return pd.DataFrame(records, columns=["id", "type", "sector", "invested", "current_value", "pnl"])


def _breakdown(df: pd.DataFrame, column: str) -> Dict[str, float]:
    grouped = df.groupby(column, sort=False)["current_value"].sum()
    return {str(label): float(value) for label, value in grouped.items()}


def allocation_percentage(current_value: float, portfolio_value: float) -> float:
    """Share of the portfolio in percent, rounded to 2 places; 0 for an empty portfolio."""
    return round(current_value / (portfolio_value or 1) * 100, 2)


def calculate_metrics(holdings: List[Holding]) -> PortfolioMetrics:
    """Compute a full metrics snapshot and refresh holding allocations.

    Each holding's ``allocation_percentage`` is rewritten in place as its
    share of the total current value.  The denominator falls back to 1
    when the total is zero, so an empty or zero-valued portfolio yields 0%
    rather than NaN.

    Args:
        holdings: The merged holdings set across all accounts.

    Returns:
        A new ``PortfolioMetrics``.
    """
    if not holdings:
        logger.debug("Metrics requested for an empty holdings list")
        return PortfolioMetrics()

    df = holdings_frame(holdings)
    total_invested = float(df["invested"].sum())
    current_value = float(df["current_value"].sum())
    total_pnl = float(df["pnl"].sum())

    for holding in holdings:
        holding.allocation_percentage = allocation_percentage(holding.current_value, current_value)

    metrics = PortfolioMetrics(
        total_invested=total_invested,
        current_value=current_value,
        total_pnl=total_pnl,
        total_pnl_percentage=(total_pnl / total_invested) * 100 if total_invested > 0 else 0.0,
        xirr=0.0,
        by_asset_type=_breakdown(df, "type"),
        by_sector=_breakdown(df, "sector"),
        risk_metrics=RiskMetrics(**PLACEHOLDER_RISK.to_dict()),
    )
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"Metrics: invested={total_invested}, value={current_value}, pnl={total_pnl}, "
            f"by_type={metrics.by_asset_type}"
        )
    _audit(f"Calculated metrics for {len(holdings)} holding(s): current_value={current_value:.2f}")
    return metrics


__all__ = [
    "PLACEHOLDER_RISK",
    "holdings_frame",
    "allocation_percentage",
    "calculate_metrics",
]
