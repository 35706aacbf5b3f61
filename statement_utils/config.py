"""
statement_utils/config.py

Configuration helpers for the statement ingestion utilities.

The header keyword table that drives column detection is data, not code:
it lives in ``config/keyword_mapping.json`` so that a new broker export
format can be supported by adding synonyms to the file.  The location may
be overridden with the ``KEYWORD_MAPPING_CONFIG`` environment variable.
When the file is missing or unreadable the built-in table below is used,
which covers the Zerodha console and CAMS/CAS registrar exports.

Run settings (store location, output directory, insight thresholds) are
read from ``config/default_settings.json`` and can be flattened into the
environment the same way the command-line runner does it.
"""

from __future__ import annotations

import json
import os
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from .logging_utils import _audit, get_logger

logger = get_logger(__name__)

# Semantic fields recognised by the header locator, in claim order.
HEADER_FIELDS: List[str] = [
    "symbol",
    "isin",
    "quantity",
    "avgPrice",
    "ltp",
    "currentValue",
    "pnl",
    "type",
]

DEFAULT_KEYWORD_MAPPING: "OrderedDict[str, List[str]]" = OrderedDict(
    [
        ("symbol", ["symbol", "instrument", "scheme", "name", "ticker", "scheme name", "particulars"]),
        ("isin", ["isin"]),
        ("quantity", ["quantity av", "qty", "quantity available", "units", "ava. qty", "balance"]),
        (
            "avgPrice",
            ["average pri", "avg cost", "average price", "buy price", "nav", "avg. price", "purchase price"],
        ),
        (
            "ltp",
            ["previous cl", "previous clo", "ltp", "current price", "last price", "market price", "last traded price"],
        ),
        ("currentValue", ["current value", "market value", "valuation", "present value", "amount"]),
        ("pnl", ["unrealized p", "p&l", "unrealized profit", "gain/loss", "profit/loss"]),
        ("type", ["instrument 1", "instrument t", "category", "asset class", "type"]),
    ]
)

DEFAULT_FUND_KEYWORDS: List[str] = ["fund", "mutual", "managed", "scheme", "growth", "direct"]

DEFAULT_SETTINGS: Dict[str, Any] = {
    "CONTEXT_STORE": "data/context.json",
    "OUTPUT_DIR": "./out",
    "DEFAULT_SOURCE": "AGENT",
    "INSIGHTS": {
        "EQUITY_CONCENTRATION_PCT": 50.0,
        "MANAGED_TILT_PCT": 50.0,
        "DRAWDOWN_PCT": -10.0,
    },
}

DEFAULT_KEYWORD_CONFIG = os.path.join("config", "keyword_mapping.json")


def _normalise_patterns(patterns: Any) -> List[str]:
    if isinstance(patterns, str):
        patterns = [patterns]
    if not isinstance(patterns, list):
        return []
    return [str(p).strip().lower() for p in patterns if str(p).strip()]


def _read_json(config_path: str) -> Optional[Dict[str, Any]]:
    if not os.path.isfile(config_path):
        return None
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error(f"Failed to read configuration {config_path}: {exc}")
        return None
    if not isinstance(raw, dict):
        logger.error(f"Configuration {config_path} is not a JSON object")
        return None
    return raw


def _resolve_keyword_path(config_path: Optional[str]) -> str:
    env_path = os.getenv("KEYWORD_MAPPING_CONFIG")
    if env_path:
        return env_path
    return config_path or DEFAULT_KEYWORD_CONFIG


def load_keyword_mapping(config_path: Optional[str] = None) -> "OrderedDict[str, List[str]]":
    """Load the field -> keyword pattern table used for header detection.

    Two layouts are accepted: ``{"fields": {field: [patterns]}, ...}`` or a
    flat ``{field: [patterns]}`` object.  Field order in the file is kept,
    because it decides which field a column is tested against first.
    Unknown field names are ignored with a warning; recognised fields
    absent from the file keep their built-in patterns.

    Args:
        config_path: Path to the JSON table.  ``KEYWORD_MAPPING_CONFIG``
            takes precedence when set.

    Returns:
        An ordered mapping of field name to lower-cased patterns.
    """
    path = _resolve_keyword_path(config_path)
    raw = _read_json(path)
    if raw is None:
        logger.warning(f"Keyword mapping config not found at {path}; using built-in table")
        return OrderedDict((k, list(v)) for k, v in DEFAULT_KEYWORD_MAPPING.items())
    fields = raw.get("fields", raw)
    if not isinstance(fields, dict):
        logger.warning(f"Keyword mapping {path} has no field table; using built-in table")
        return OrderedDict((k, list(v)) for k, v in DEFAULT_KEYWORD_MAPPING.items())
    mapping: "OrderedDict[str, List[str]]" = OrderedDict()
    for field, patterns in fields.items():
        if field not in HEADER_FIELDS:
            if field != "fund_keywords":
                logger.warning(f"Ignoring unknown header field '{field}' in {path}")
            continue
        normalised = _normalise_patterns(patterns)
        if normalised:
            mapping[field] = normalised
    for field in HEADER_FIELDS:
        if field not in mapping:
            mapping[field] = list(DEFAULT_KEYWORD_MAPPING[field])
    _audit(f"Loaded keyword mapping from {path} with {sum(len(v) for v in mapping.values())} pattern(s)")
    return mapping


def load_fund_keywords(config_path: Optional[str] = None) -> List[str]:
    """Return the words that mark a row as a managed fund rather than a stock."""
    raw = _read_json(_resolve_keyword_path(config_path))
    if raw is None:
        return list(DEFAULT_FUND_KEYWORDS)
    keywords = _normalise_patterns(raw.get("fund_keywords"))
    return keywords or list(DEFAULT_FUND_KEYWORDS)


def load_settings(path: str) -> Dict[str, Any]:
    """Load run settings from JSON, layered over ``DEFAULT_SETTINGS``."""
    settings: Dict[str, Any] = json.loads(json.dumps(DEFAULT_SETTINGS))
    raw = _read_json(path)
    if raw is None:
        return settings
    for key, value in raw.items():
        if isinstance(value, dict) and isinstance(settings.get(key), dict):
            settings[key].update(value)
        else:
            settings[key] = value
    return settings


def apply_env_from_settings(settings: Dict[str, Any]) -> None:
    # Flatten a few top-level values into env for the utilities
    for k in ("CONTEXT_STORE", "OUTPUT_DIR", "DEBUG", "KEYWORD_MAPPING_CONFIG"):
        if k in settings and settings[k] is not None:
            os.environ[k] = str(settings[k])


__all__ = [
    "HEADER_FIELDS",
    "DEFAULT_KEYWORD_MAPPING",
    "DEFAULT_FUND_KEYWORDS",
    "DEFAULT_SETTINGS",
    "load_keyword_mapping",
    "load_fund_keywords",
    "load_settings",
    "apply_env_from_settings",
]
