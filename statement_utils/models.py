"""Data model for reconciled investment holdings.

Accounts, instruments, holdings, metrics and insights are plain dataclasses.
Each one converts to and from a JSON-ready dict so the whole
``ReconciledContext`` can be persisted as a single document.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

CONTEXT_VERSION = "1.0.0"


def utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="seconds")


class AccountSource(str, Enum):
    ZERODHA = "ZERODHA"
    CAMS = "CAMS"
    CAS = "CAS"
    AGENT = "AGENT"
    MANUAL = "MANUAL"

    @classmethod
    def parse(cls, value: "AccountSource | str") -> "AccountSource":
        """Accept an enum member or a case-insensitive source name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(
                f"Unknown account source '{value}'; expected one of {[s.value for s in cls]}"
            ) from None


class InstrumentType(str, Enum):
    STOCK = "STOCK"
    MUTUAL_FUND = "MUTUAL_FUND"
    ETF = "ETF"
    BOND = "BOND"


def account_id_for(source: "AccountSource | str") -> str:
    """Stable account identifier; re-uploading a source overwrites its account."""
    return f"acc_node_{AccountSource.parse(source).value.lower()}"


def account_name_for(source: "AccountSource | str") -> str:
    if AccountSource.parse(source) is AccountSource.ZERODHA:
        return "Zerodha Ledger"
    return "External Registry"


@dataclass
class Account:
    """One ingestion source.

    Attributes:
        id: Deterministic identifier derived from ``source``.
        name: Display name.
        source: Statement provider.
        last_synced: ISO timestamp of the last successful upload.
        account_number: Optional broker/registrar account number.
    """

    id: str
    name: str
    source: AccountSource
    last_synced: str
    account_number: Optional[str] = None

    def __post_init__(self):
        self.source = AccountSource.parse(self.source)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "source": self.source.value,
            "last_synced": self.last_synced,
        }
        if self.account_number is not None:
            data["account_number"] = self.account_number
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            source=data.get("source", AccountSource.MANUAL),
            last_synced=data.get("last_synced", ""),
            account_number=data.get("account_number"),
        )


@dataclass
class Instrument:
    symbol: str
    isin: str
    name: str
    type: InstrumentType
    sector: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        self.type = InstrumentType(self.type)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "symbol": self.symbol,
            "isin": self.isin,
            "name": self.name,
            "type": self.type.value,
        }
        if self.sector is not None:
            data["sector"] = self.sector
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instrument":
        return cls(
            symbol=data["symbol"],
            isin=data.get("isin") or "",
            name=data.get("name") or data["symbol"],
            type=data.get("type", InstrumentType.STOCK),
            sector=data.get("sector"),
            category=data.get("category"),
        )


@dataclass
class Holding:
    """One position of one instrument within one account.

    ``allocation_percentage`` is owned by the metrics aggregator and is
    recomputed whenever the holdings set changes.
    """

    id: str
    account_id: str
    instrument: Instrument
    quantity: float
    average_price: float
    current_price: float
    current_value: float
    pnl: float
    pnl_percentage: float
    allocation_percentage: float = 0.0

    @property
    def invested_value(self) -> float:
        return self.quantity * self.average_price

    def merge_key(self) -> str:
        return f"{self.account_id}_{self.instrument.symbol.lower()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "instrument": self.instrument.to_dict(),
            "quantity": self.quantity,
            "average_price": self.average_price,
            "current_price": self.current_price,
            "current_value": self.current_value,
            "pnl": self.pnl,
            "pnl_percentage": self.pnl_percentage,
            "allocation_percentage": self.allocation_percentage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Holding":
        return cls(
            id=data["id"],
            account_id=data["account_id"],
            instrument=Instrument.from_dict(data["instrument"]),
            quantity=float(data.get("quantity", 0.0)),
            average_price=float(data.get("average_price", 0.0)),
            current_price=float(data.get("current_price", 0.0)),
            current_value=float(data.get("current_value", 0.0)),
            pnl=float(data.get("pnl", 0.0)),
            pnl_percentage=float(data.get("pnl_percentage", 0.0)),
            allocation_percentage=float(data.get("allocation_percentage", 0.0)),
        )


@dataclass
class RiskMetrics:
    beta: float = 0.0
    standard_deviation: float = 0.0
    sharpe_ratio: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "beta": self.beta,
            "standard_deviation": self.standard_deviation,
            "sharpe_ratio": self.sharpe_ratio,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskMetrics":
        return cls(
            beta=float(data.get("beta", 0.0)),
            standard_deviation=float(data.get("standard_deviation", 0.0)),
            sharpe_ratio=float(data.get("sharpe_ratio", 0.0)),
        )


@dataclass
class PortfolioMetrics:
    """Derived snapshot of a holdings set; recomputed in full on every merge."""

    total_invested: float = 0.0
    current_value: float = 0.0
    total_pnl: float = 0.0
    total_pnl_percentage: float = 0.0
    xirr: float = 0.0
    by_asset_type: Dict[str, float] = field(default_factory=dict)
    by_sector: Dict[str, float] = field(default_factory=dict)
    risk_metrics: RiskMetrics = field(default_factory=RiskMetrics)

    @property
    def allocation_breakdown(self) -> Dict[str, Dict[str, float]]:
        return {"by_asset_type": self.by_asset_type, "by_sector": self.by_sector}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_invested": self.total_invested,
            "current_value": self.current_value,
            "total_pnl": self.total_pnl,
            "total_pnl_percentage": self.total_pnl_percentage,
            "xirr": self.xirr,
            "allocation_breakdown": {
                "by_asset_type": dict(self.by_asset_type),
                "by_sector": dict(self.by_sector),
            },
            "risk_metrics": self.risk_metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortfolioMetrics":
        breakdown = data.get("allocation_breakdown") or {}
        return cls(
            total_invested=float(data.get("total_invested", 0.0)),
            current_value=float(data.get("current_value", 0.0)),
            total_pnl=float(data.get("total_pnl", 0.0)),
            total_pnl_percentage=float(data.get("total_pnl_percentage", 0.0)),
            xirr=float(data.get("xirr", 0.0)),
            by_asset_type={k: float(v) for k, v in (breakdown.get("by_asset_type") or {}).items()},
            by_sector={k: float(v) for k, v in (breakdown.get("by_sector") or {}).items()},
            risk_metrics=RiskMetrics.from_dict(data.get("risk_metrics") or {}),
        )


@dataclass
class Insight:
    observation: str
    why_this_matters: str
    evidence: str
    suggested_action: Optional[str]
    confidence_level: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observation": self.observation,
            "why_this_matters": self.why_this_matters,
            "evidence": self.evidence,
            "suggested_action": self.suggested_action,
            "confidence_level": self.confidence_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Insight":
        return cls(
            observation=data.get("observation", ""),
            why_this_matters=data.get("why_this_matters", ""),
            evidence=data.get("evidence", ""),
            suggested_action=data.get("suggested_action"),
            confidence_level=int(data.get("confidence_level", 0)),
        )


@dataclass
class ReconciledContext:
    """Aggregate root handed to persistence and display collaborators."""

    version: str = CONTEXT_VERSION
    timestamp: str = field(default_factory=utc_now_iso)
    accounts: List[Account] = field(default_factory=list)
    holdings: List[Holding] = field(default_factory=list)
    metrics: PortfolioMetrics = field(default_factory=PortfolioMetrics)
    insights: List[Insight] = field(default_factory=list)
    constraints: Dict[str, str] = field(
        default_factory=lambda: {"risk_profile": "MODERATE", "investment_horizon": "LONG_TERM"}
    )

    @classmethod
    def initial(cls) -> "ReconciledContext":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "accounts": [a.to_dict() for a in self.accounts],
            "holdings": [h.to_dict() for h in self.holdings],
            "metrics": self.metrics.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
            "constraints": dict(self.constraints),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReconciledContext":
        initial = cls.initial()
        return cls(
            version=data.get("version", CONTEXT_VERSION),
            timestamp=data.get("timestamp") or initial.timestamp,
            accounts=[Account.from_dict(a) for a in data.get("accounts") or []],
            holdings=[Holding.from_dict(h) for h in data.get("holdings") or []],
            metrics=PortfolioMetrics.from_dict(data.get("metrics") or {}),
            insights=[Insight.from_dict(i) for i in data.get("insights") or []],
            constraints=dict(data.get("constraints") or initial.constraints),
        )


__all__ = [
    "AccountSource",
    "InstrumentType",
    "Account",
    "Instrument",
    "Holding",
    "RiskMetrics",
    "PortfolioMetrics",
    "Insight",
    "ReconciledContext",
    "account_id_for",
    "account_name_for",
    "utc_now_iso",
]
