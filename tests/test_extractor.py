"""Tests for statement_utils.extractor."""

import numpy as np
import pytest

from statement_utils.extractor import (
    cell_text,
    extract_holding,
    infer_instrument_type,
    normalize_symbol,
    parse_number,
    sector_for,
)
from statement_utils.models import InstrumentType


class TestParseNumber:
    def test_rupee_with_indian_grouping(self):
        assert parse_number("₹1,23,456.78") == pytest.approx(123456.78)

    @pytest.mark.parametrize("value", ["", "-", None, "n/a", "--"])
    def test_empty_and_dash_are_zero(self, value):
        assert parse_number(value) == 0.0

    def test_numeric_cells_pass_through(self):
        assert parse_number(42) == 42.0
        assert parse_number(3.5) == 3.5
        assert parse_number(np.float64(7.25)) == 7.25

    def test_non_finite_numbers_are_zero(self):
        assert parse_number(float("nan")) == 0.0
        assert parse_number(float("inf")) == 0.0

    def test_booleans_are_not_numbers(self):
        assert parse_number(True) == 0.0

    def test_negative_and_annotations(self):
        assert parse_number("-1,200.50 Dr") == pytest.approx(-1200.5)
        assert parse_number("12.5 units") == pytest.approx(12.5)

    def test_leading_numeric_prefix(self):
        assert parse_number("12-2024") == 12.0

    def test_only_ascii_digits_count(self):
        assert parse_number("\u0967\u0968\u0969") == 0.0
        assert parse_number("\u0967\u0968 5") == 5.0


class TestSymbolHelpers:
    def test_normalize_symbol(self):
        assert normalize_symbol("  HDFC  Bank Ltd ") == "hdfc_bank_ltd"

    def test_cell_text_drops_integral_float_suffix(self):
        assert cell_text(500325.0) == "500325"
        assert cell_text(" INFY ") == "INFY"
        assert cell_text(None) == ""


class TestInferInstrumentType:
    def test_fund_isin_wins_regardless_of_sheet(self):
        assert infer_instrument_type("INF179K01158", "Equity", "", "HDFC") is InstrumentType.MUTUAL_FUND

    def test_equity_isin(self):
        assert infer_instrument_type("INE002A01018", "Holdings", "", "RELIANCE") is InstrumentType.STOCK

    def test_fund_sheet_beats_equity_isin(self):
        assert infer_instrument_type("INE002A01018", "Mutual Funds", "", "X") is InstrumentType.MUTUAL_FUND

    def test_type_hint_keywords(self):
        assert infer_instrument_type("", "Sheet1", "Managed Portfolio", "ABC") is InstrumentType.MUTUAL_FUND

    def test_symbol_keywords(self):
        assert infer_instrument_type("", "Sheet1", "", "Axis Bluechip Growth") is InstrumentType.MUTUAL_FUND

    def test_long_symbol_is_fund(self):
        assert infer_instrument_type("", "Sheet1", "", "A" * 23) is InstrumentType.MUTUAL_FUND
        assert infer_instrument_type("", "Sheet1", "", "A" * 22) is InstrumentType.STOCK

    def test_default_is_stock(self):
        assert infer_instrument_type("", "Sheet1", "EQ", "TCS") is InstrumentType.STOCK

    def test_sector_labels(self):
        assert sector_for(InstrumentType.STOCK) == "Direct Equity"
        assert sector_for(InstrumentType.MUTUAL_FUND) == "Managed Assets"
        assert sector_for(InstrumentType.ETF) == "Managed Assets"


HEADER = {"symbol": 0, "quantity": 1, "avgPrice": 2, "ltp": 3}


class TestExtractHolding:
    def test_basic_row(self):
        h = extract_holding(HEADER, ["INFY", "10", "1500", "1600"], "Sheet1", "acc_node_zerodha")
        assert h.id == "acc_node_zerodha_infy"
        assert h.quantity == 10
        assert h.average_price == 1500
        assert h.current_value == 16000
        assert h.pnl == 1000
        assert h.current_price == 1600
        assert h.pnl_percentage == pytest.approx(1000 / 15000 * 100)
        assert h.allocation_percentage == 0.0
        assert h.instrument.type is InstrumentType.STOCK
        assert h.instrument.sector == "Direct Equity"

    @pytest.mark.parametrize("symbol", ["", "X", "Grand Total", "TOTAL"])
    def test_skips_blank_short_and_total_rows(self, symbol):
        assert extract_holding(HEADER, [symbol, "10", "100", "110"], "Sheet1", "a") is None

    def test_skips_rows_without_quantity_and_price(self):
        assert extract_holding(HEADER, ["INFY", "-", "", "1600"], "Sheet1", "a") is None

    def test_missing_ltp_column_falls_back_to_average_price(self):
        header = {"symbol": 0, "quantity": 1, "avgPrice": 2}
        h = extract_holding(header, ["TCS", "2", "3000"], "Sheet1", "a")
        assert h.current_value == 6000
        assert h.pnl == 0

    def test_reported_value_and_pnl_take_precedence(self):
        header = {"symbol": 0, "quantity": 1, "avgPrice": 2, "ltp": 3, "currentValue": 4, "pnl": 5}
        h = extract_holding(header, ["TCS", "2", "3000", "3100", "6500", "450"], "Sheet1", "a")
        assert h.current_value == 6500
        assert h.pnl == 450
        assert h.current_price == 3250

    def test_back_derives_value_from_pnl(self):
        header = {"symbol": 0, "quantity": 1, "avgPrice": 2, "ltp": 3, "pnl": 4}
        h = extract_holding(header, ["TCS", "2", "3000", "", "400"], "Sheet1", "a")
        assert h.current_value == 6400
        assert h.pnl == 400

    def test_zero_quantity_uses_ltp_as_price(self):
        h = extract_holding(HEADER, ["TCS", "0", "3000", "3100"], "Sheet1", "a")
        assert h.current_price == 3100
        assert h.current_value == 0

    def test_short_rows_do_not_raise(self):
        header = {"symbol": 0, "quantity": 1, "avgPrice": 2, "isin": 5}
        h = extract_holding(header, ["TCS", "1", "100"], "Sheet1", "a")
        assert h.instrument.isin == ""

    def test_isin_is_upper_cased(self):
        header = {"symbol": 0, "isin": 1, "quantity": 2, "avgPrice": 3}
        h = extract_holding(header, ["SBI Bluechip", "inf200k01180", "12.5", "60"], "Sheet1", "a")
        assert h.instrument.isin == "INF200K01180"
        assert h.instrument.type is InstrumentType.MUTUAL_FUND
        assert h.instrument.sector == "Managed Assets"

    def test_id_uses_normalized_symbol(self):
        h = extract_holding(HEADER, ["HDFC  Bank", "1", "100", "100"], "Sheet1", "acc_node_cams")
        assert h.id == "acc_node_cams_hdfc_bank"
        assert h.instrument.symbol == "HDFC  Bank"
