"""Tests for statement_utils.metrics."""

import pytest

from conftest import make_holding
from statement_utils.metrics import PLACEHOLDER_RISK, allocation_percentage, calculate_metrics
from statement_utils.models import InstrumentType


class TestCalculateMetrics:
    def test_totals(self):
        holdings = [
            make_holding("a", "INFY", 16000, quantity=10, average_price=1500),
            make_holding("a", "PPFAS", 7500, quantity=100, average_price=60, instrument_type=InstrumentType.MUTUAL_FUND),
        ]
        m = calculate_metrics(holdings)
        assert m.total_invested == pytest.approx(21000)
        assert m.current_value == pytest.approx(23500)
        assert m.total_pnl == pytest.approx(2500)
        assert m.total_pnl_percentage == pytest.approx(2500 / 21000 * 100)
        assert m.xirr == 0.0

    def test_breakdowns(self):
        holdings = [
            make_holding("a", "INFY", 600),
            make_holding("a", "TCS", 200),
            make_holding("a", "PPFAS", 200, instrument_type=InstrumentType.MUTUAL_FUND),
        ]
        m = calculate_metrics(holdings)
        assert m.by_asset_type == {"STOCK": 800.0, "MUTUAL_FUND": 200.0}
        assert m.by_sector == {"Direct Equity": 800.0, "Managed Assets": 200.0}
        assert m.allocation_breakdown["by_asset_type"] is m.by_asset_type

    def test_allocations_sum_to_hundred(self):
        holdings = [make_holding("a", f"S{i}", v) for i, v in enumerate([333.33, 333.33, 333.34, 17.5])]
        calculate_metrics(holdings)
        assert sum(h.allocation_percentage for h in holdings) == pytest.approx(100, abs=0.05)
        assert all(round(h.allocation_percentage, 2) == h.allocation_percentage for h in holdings)

    def test_zero_value_portfolio_gives_zero_allocations(self):
        holdings = [make_holding("a", "INFY", 0, quantity=1, average_price=0)]
        m = calculate_metrics(holdings)
        assert m.current_value == 0
        assert m.total_pnl_percentage == 0.0
        assert holdings[0].allocation_percentage == 0.0

    def test_sector_breakdown_follows_instrument_type(self):
        holding = make_holding("a", "INFY", 100)
        holding.instrument.sector = "Information Technology"
        m = calculate_metrics([holding])
        assert m.by_sector == {"Direct Equity": 100.0}

    def test_empty_portfolio(self):
        m = calculate_metrics([])
        assert m.total_invested == 0.0
        assert m.by_asset_type == {}
        assert m.risk_metrics.beta == 0.0

    def test_placeholder_risk_metrics(self):
        m = calculate_metrics([make_holding("a", "INFY", 100)])
        assert m.risk_metrics == PLACEHOLDER_RISK
        assert m.risk_metrics is not PLACEHOLDER_RISK


class TestAllocationPercentage:
    def test_rounds_to_two_places(self):
        assert allocation_percentage(1, 3) == 33.33

    def test_zero_denominator_guard(self):
        assert allocation_percentage(0, 0) == 0.0
        assert allocation_percentage(5, 0) == 500.0
