"""
statement_utils/insights.py

Rule-based advisory insights over portfolio metrics.

Each rule looks at the metrics snapshot (and the holdings, whose
allocation percentages the aggregator has just refreshed) and returns
either one ``Insight`` or ``None``.  Rules are independent and evaluated in
order; adding a rule never changes what the others produce.  A rule that
raises is logged and skipped, so insight generation itself never fails.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .logging_utils import _audit, get_logger
from .models import Holding, Insight, InstrumentType, PortfolioMetrics

logger = get_logger(__name__)


def _share_pct(value: float, metrics: PortfolioMetrics) -> float:
    return value / (metrics.current_value or 1) * 100


class InsightRule:
    """Base class for insight rules."""

    name = "rule"

    def evaluate(self, metrics: PortfolioMetrics, holdings: Sequence[Holding]) -> Optional[Insight]:
        raise NotImplementedError


class EquityConcentrationRule(InsightRule):
    name = "equity_concentration"

    def __init__(self, threshold_pct: float = 50.0):
        self.threshold_pct = threshold_pct

    def evaluate(self, metrics, holdings):
        stocks_value = metrics.by_asset_type.get(InstrumentType.STOCK.value, 0.0)
        pct = _share_pct(stocks_value, metrics)
        if pct <= self.threshold_pct:
            return None
        return Insight(
            observation="Direct Equity Focus",
            why_this_matters="Concentrated stock picks can lead to significant outperformance or higher drawdown.",
            evidence=f"Individual stocks represent {pct:.1f}% of your capital.",
            suggested_action="Monitor core holdings for cyclical shifts.",
            confidence_level=98,
        )


class SingleHoldingRule(InsightRule):
    name = "single_holding"

    def __init__(self, threshold_pct: float = 25.0):
        self.threshold_pct = threshold_pct

    def evaluate(self, metrics, holdings):
        if not holdings or metrics.current_value <= 0:
            return None
        largest = max(holdings, key=lambda h: h.current_value)
        pct = _share_pct(largest.current_value, metrics)
        if pct <= self.threshold_pct:
            return None
        return Insight(
            observation="Single Holding Concentration",
            why_this_matters="A large single position ties portfolio outcomes to one issuer or scheme.",
            evidence=f"{largest.instrument.symbol} alone accounts for {pct:.1f}% of portfolio value.",
            suggested_action="Review position sizing for the largest holding.",
            confidence_level=90,
        )


class ManagedAssetTiltRule(InsightRule):
    name = "managed_tilt"

    def __init__(self, threshold_pct: float = 50.0):
        self.threshold_pct = threshold_pct

    def evaluate(self, metrics, holdings):
        managed_value = sum(
            value for label, value in metrics.by_asset_type.items() if label != InstrumentType.STOCK.value
        )
        pct = _share_pct(managed_value, metrics)
        if pct <= self.threshold_pct:
            return None
        return Insight(
            observation="Managed Asset Tilt",
            why_this_matters="Fund-heavy portfolios depend on scheme selection and expense ratios.",
            evidence=f"Funds and other managed assets represent {pct:.1f}% of your capital.",
            suggested_action="Check overlap between schemes and compare expense ratios.",
            confidence_level=85,
        )


class DrawdownRule(InsightRule):
    name = "drawdown"

    def __init__(self, threshold_pct: float = -10.0):
        self.threshold_pct = threshold_pct

    def evaluate(self, metrics, holdings):
        if metrics.total_invested <= 0 or metrics.total_pnl_percentage >= self.threshold_pct:
            return None
        return Insight(
            observation="Portfolio Drawdown",
            why_this_matters="Unrealised losses of this size usually call for a thesis review, not just patience.",
            evidence=f"Unrealised P&L stands at {metrics.total_pnl_percentage:.1f}% of invested capital.",
            suggested_action="Revisit the holdings driving the loss.",
            confidence_level=92,
        )


def default_rules(thresholds: Optional[Mapping[str, Any]] = None) -> List[InsightRule]:
    """Build the default rule set, optionally overriding thresholds.

    ``thresholds`` uses the keys of the ``INSIGHTS`` settings block, e.g.
    ``{"EQUITY_CONCENTRATION_PCT": 60}``.  The single-holding rule is
    opt-in: it is added only when ``SINGLE_HOLDING_PCT`` is configured.
    """
    t: Dict[str, Any] = dict(thresholds or {})
    rules: List[InsightRule] = [
        EquityConcentrationRule(float(t.get("EQUITY_CONCENTRATION_PCT", 50.0))),
        ManagedAssetTiltRule(float(t.get("MANAGED_TILT_PCT", 50.0))),
        DrawdownRule(float(t.get("DRAWDOWN_PCT", -10.0))),
    ]
    if t.get("SINGLE_HOLDING_PCT") is not None:
        rules.insert(1, SingleHoldingRule(float(t["SINGLE_HOLDING_PCT"])))
    return rules


def generate_insights(
    metrics: PortfolioMetrics,
    holdings: Sequence[Holding],
    rules: Optional[Sequence[InsightRule]] = None,
) -> List[Insight]:
    """Apply each rule in order and collect the insights they emit."""
    insights: List[Insight] = []
    for rule in rules if rules is not None else default_rules():
        try:
            insight = rule.evaluate(metrics, holdings)
        except Exception as exc:
            logger.warning(f"Insight rule {rule.name} failed: {exc}")
            continue
        if insight is not None:
            insights.append(insight)
    if insights:
        _audit(f"Generated {len(insights)} insight(s)")
    return insights


__all__ = [
    "InsightRule",
    "EquityConcentrationRule",
    "SingleHoldingRule",
    "ManagedAssetTiltRule",
    "DrawdownRule",
    "default_rules",
    "generate_insights",
]
