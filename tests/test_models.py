"""Tests for statement_utils.models and the audit trail."""

import pytest

from conftest import make_holding
from statement_utils.logging_utils import _audit, clear_audit_log, get_audit_log
from statement_utils.models import (
    Account,
    AccountSource,
    Insight,
    PortfolioMetrics,
    ReconciledContext,
    account_id_for,
)


class TestAccountSource:
    def test_parse_is_case_insensitive(self):
        assert AccountSource.parse(" cams ") is AccountSource.CAMS
        assert account_id_for("cas") == "acc_node_cas"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown account source"):
            AccountSource.parse("ROBINHOOD")


class TestReconciledContext:
    def test_initial(self):
        context = ReconciledContext.initial()
        assert context.version == "1.0.0"
        assert context.metrics == PortfolioMetrics()
        assert context.constraints == {"risk_profile": "MODERATE", "investment_horizon": "LONG_TERM"}

    def test_dict_round_trip(self):
        context = ReconciledContext(
            timestamp="2026-01-01T00:00:00+00:00",
            accounts=[Account("acc_node_zerodha", "Zerodha Ledger", "ZERODHA", "2026-01-01T00:00:00+00:00")],
            holdings=[make_holding("acc_node_zerodha", "INFY", 1600.0, quantity=1.0, average_price=1500.0)],
            insights=[Insight("Direct Equity Focus", "why", "evidence", None, 98)],
        )
        restored = ReconciledContext.from_dict(context.to_dict())
        assert restored == context
        assert restored.accounts[0].source is AccountSource.ZERODHA

    def test_from_partial_dict(self):
        context = ReconciledContext.from_dict({"holdings": []})
        assert context.accounts == []
        assert context.constraints["investment_horizon"] == "LONG_TERM"


class TestAuditLog:
    def test_records_and_clears(self, monkeypatch):
        monkeypatch.setenv("AUDIT", "true")
        clear_audit_log()
        _audit("uploaded holdings.xlsx")
        assert [msg for _, msg in get_audit_log()] == ["uploaded holdings.xlsx"]
        clear_audit_log()
        assert get_audit_log() == []

    def test_disabled(self, monkeypatch):
        monkeypatch.setenv("AUDIT", "false")
        clear_audit_log()
        _audit("ignored")
        assert get_audit_log() == []
