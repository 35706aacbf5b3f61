"""
Reconciliation of a freshly parsed account into the stored context.

Re-uploading a source replaces that account's holdings wholesale: the
merge seeds its map only with other accounts' holdings, so positions that
disappeared from the new statement are dropped.  Output is always a full
replacement set of accounts and holdings, never a patch.
"""

from __future__ import annotations

import copy
from typing import Dict, List, Optional, Sequence, Tuple

from .insights import InsightRule, generate_insights
from .logging_utils import _audit, get_logger
from .metrics import calculate_metrics
from .models import Account, Holding, ReconciledContext, utc_now_iso

logger = get_logger(__name__)


def merge_accounts(existing: Sequence[Account], account: Account) -> List[Account]:
    """Replace the account with the same id in place, or append it."""
    accounts = list(existing)
    for idx, current in enumerate(accounts):
        if current.id == account.id:
            accounts[idx] = account
            return accounts
    accounts.append(account)
    return accounts


def merge_records(
    context: ReconciledContext,
    account: Account,
    holdings: Sequence[Holding],
) -> Tuple[List[Account], List[Holding]]:
    """Merge one account's parsed holdings into the context's holdings.

    Holdings are keyed by ``account_id`` plus lower-cased symbol.  Other
    accounts' holdings are kept untouched; the uploaded account's previous
    holdings are discarded and the new ones inserted.
    """
    accounts = merge_accounts(context.accounts, account)
    merged: Dict[str, Holding] = {}
    for holding in context.holdings:
        if holding.account_id != account.id:
            merged[holding.merge_key()] = holding
    for holding in holdings:
        merged[holding.merge_key()] = holding
    dropped = sum(1 for h in context.holdings if h.account_id == account.id)
    logger.debug(
        f"Merged {len(holdings)} new holding(s) for {account.id}; replaced {dropped} previous; "
        f"{len(merged)} total"
    )
    return accounts, list(merged.values())


def reconcile(
    context: ReconciledContext,
    account: Account,
    holdings: Sequence[Holding],
    rules: Optional[Sequence[InsightRule]] = None,
    now: Optional[str] = None,
) -> ReconciledContext:
    """Return a new context with ``account`` merged and metrics/insights rebuilt.

    The input context and holdings are not modified; the aggregator's
    allocation updates are applied to copies.
    """
    accounts, merged = merge_records(context, account, holdings)
    merged = copy.deepcopy(merged)
    metrics = calculate_metrics(merged)
    insights = generate_insights(metrics, merged, rules)
    _audit(f"Reconciled account {account.id}: {len(accounts)} account(s), {len(merged)} holding(s)")
    return ReconciledContext(
        version=context.version,
        timestamp=now or utc_now_iso(),
        accounts=copy.deepcopy(accounts),
        holdings=merged,
        metrics=metrics,
        insights=insights,
        constraints=dict(context.constraints),
    )


__all__ = ["merge_accounts", "merge_records", "reconcile"]
