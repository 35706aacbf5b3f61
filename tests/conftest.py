"""Shared test fixtures for statement_utils."""

import io
import os

os.environ.setdefault("LOG_TO_FILE", "false")

import pandas as pd
import pytest

from statement_utils.models import Holding, Instrument, InstrumentType
from statement_utils.store import ContextStore


def make_workbook(sheets):
    """Build xlsx bytes from ``{sheet_name: [[cell, ...], ...]}``."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return buf.getvalue()


def make_csv(rows):
    return "\n".join(",".join(str(c) for c in row) for row in rows).encode("utf-8")


def make_holding(account_id, symbol, current_value, *, quantity=1.0, average_price=None,
                 isin="", instrument_type=InstrumentType.STOCK):
    average_price = current_value if average_price is None else average_price
    sector = "Direct Equity" if instrument_type is InstrumentType.STOCK else "Managed Assets"
    invested = quantity * average_price
    pnl = current_value - invested
    return Holding(
        id=f"{account_id}_{symbol.lower()}",
        account_id=account_id,
        instrument=Instrument(symbol=symbol, isin=isin, name=symbol, type=instrument_type, sector=sector),
        quantity=quantity,
        average_price=average_price,
        current_price=current_value / quantity if quantity else 0.0,
        current_value=current_value,
        pnl=pnl,
        pnl_percentage=pnl / invested * 100 if invested else 0.0,
    )


@pytest.fixture
def store(tmp_path):
    return ContextStore(str(tmp_path / "context.json"))


@pytest.fixture
def zerodha_rows():
    return [
        ["Client ID", "AB1234", "", "", "", ""],
        ["Statement of holdings", "", "", "", "", ""],
        ["", "", "", "", "", ""],
        ["Symbol", "ISIN", "Quantity Available", "Average Price", "Previous Closing Price", "Unrealized P&L"],
        ["INFY", "INE009A01021", "10", "1500", "1600", "1000"],
        ["RELIANCE", "INE002A01018", "5", "2400", "2500", "500"],
        ["Total", "", "", "", "", "1500"],
    ]
