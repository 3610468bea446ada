"""Account panel: spend progress and transaction list projection."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, List

from caps.core.data_models import AccountSnapshot, HistoryItem, HistoryKind, Transaction

from .formatting import format_clock, format_money

logger = logging.getLogger("caps.backend.account_view")

ICON_SUCCESS = "success"
ICON_FAILURE = "failure"
ICON_IN_PROGRESS = "in_progress"
ICON_NEUTRAL = "neutral"

STATUS_ICONS = MappingProxyType(
    {
        "completed": ICON_SUCCESS,
        "success": ICON_SUCCESS,
        "failed": ICON_FAILURE,
        "pending": ICON_IN_PROGRESS,
        "executing": ICON_IN_PROGRESS,
    }
)


def spend_percent(daily_spend: float, daily_limit: float) -> float:
    """Share of the daily limit already spent, clamped to [0, 100]."""
    if daily_limit <= 0:
        return 100.0
    return max(0.0, min(daily_spend / daily_limit * 100, 100.0))


def spend_tone(percent: float) -> str:
    if percent > 80:
        return "danger"
    if percent > 50:
        return "warning"
    return "ok"


def status_icon(status: Any) -> str:
    if not isinstance(status, str):
        return ICON_NEUTRAL
    return STATUS_ICONS.get(status.strip().lower(), ICON_NEUTRAL)


class TransactionHistoryViewModel:
    """Derived view of an :class:`AccountSnapshot` for the account panel."""

    def __init__(self, snapshot: AccountSnapshot):
        self.snapshot = snapshot

    @property
    def spend_percent(self) -> float:
        return spend_percent(self.snapshot.daily_spend, self.snapshot.daily_limit)

    def transaction_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                "merchant": txn.merchant,
                "amount": txn.amount,
                "amount_label": f"-{format_money(txn.amount)}",
                "status": txn.status,
                "status_label": txn.status.capitalize(),
                "status_icon": status_icon(txn.status),
                "time": format_clock(txn.timestamp),
            }
            for txn in self.snapshot.transactions
        ]

    def to_dict(self) -> Dict[str, Any]:
        percent = self.spend_percent
        rows = self.transaction_rows()
        return {
            "balance": self.snapshot.balance,
            "balance_label": f"₹{self.snapshot.balance:,.2f}",
            "daily_spend": self.snapshot.daily_spend,
            "daily_limit": self.snapshot.daily_limit,
            "spend_label": f"{format_money(self.snapshot.daily_spend)} / {format_money(self.snapshot.daily_limit)}",
            "spend_percent": percent,
            "spend_tone": spend_tone(percent),
            "transactions": rows,
            "empty_message": None if rows else "No transactions yet",
        }


class AccountStateTracker:
    """Keeps the account snapshot in step with executed commands.

    Subscribed to the session history; each SYSTEM turn whose execution
    result reports balance, spend, or history replaces the matching fields.
    """

    def __init__(self, daily_limit: float):
        self._snapshot = AccountSnapshot(daily_limit=daily_limit)

    @property
    def snapshot(self) -> AccountSnapshot:
        return self._snapshot

    def view(self) -> TransactionHistoryViewModel:
        return TransactionHistoryViewModel(self._snapshot)

    def __call__(self, item: HistoryItem) -> None:
        if item.kind is not HistoryKind.SYSTEM or item.response is None:
            return
        result = item.response.execution_result
        if result is None:
            return

        updates: Dict[str, Any] = {}
        if result.balance is not None:
            updates["balance"] = result.balance
        if result.daily_spend is not None:
            updates["daily_spend"] = result.daily_spend
        if result.history is not None:
            updates["transactions"] = [Transaction.from_record(record) for record in result.history]
        if not updates:
            return

        self._snapshot = self._snapshot.model_copy(update=updates)
        logger.debug("Account snapshot updated: %s", sorted(updates))
