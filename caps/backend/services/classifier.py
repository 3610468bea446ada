"""
Response classifier - turns a command response into ordered display fragments.

`classify` is a pure function: the same response and render time always give
the same fragments. Every content rule is evaluated on its own, so a single
response may carry several content fragments (e.g. payment details together
with the execution receipt).
"""

from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, computed_field

from caps.core.data_models import (
    CommandResponse,
    HistoryItem,
    HistoryKind,
    IntentType,
    PolicyDecision,
    TransactionRecord,
)

from .account_view import spend_percent
from .formatting import format_clock, format_date, format_local_time, format_money

# Fixed cap shown on the balance card. Not tied to the configured daily limit.
REFERENCE_SPEND_CAP = 2000.0

UNKNOWN_MERCHANT = "Unknown"
NO_TRANSACTIONS_MESSAGE = "No recent transactions"
POSITIVE_TXN_STATES = frozenset({"completed", "executed"})

DECISION_TONES = MappingProxyType(
    {
        PolicyDecision.APPROVE.value: "positive",
        PolicyDecision.DENY.value: "negative",
    }
)


class Fragment(BaseModel):
    model_config = ConfigDict(frozen=True)


class HeaderFragment(Fragment):
    kind: Literal["header"] = "header"
    decision: str
    tone: str
    time: str


class MessageFragment(Fragment):
    kind: Literal["message"] = "message"
    text: str


class TextFragment(Fragment):
    """Plain bubble used for user utterances and error turns."""

    kind: Literal["text"] = "text"
    text: str
    tone: str


class PaymentDetailsFragment(Fragment):
    kind: Literal["payment_details"] = "payment_details"
    merchant: str
    amount: Optional[float]
    amount_label: str


class BalanceInquiryFragment(Fragment):
    kind: Literal["balance_inquiry"] = "balance_inquiry"
    balance: Optional[float]
    daily_spend: Optional[float]
    balance_label: str
    spend_label: str
    reference_cap: float
    spend_percent: float


class HistoryEntry(Fragment):
    merchant: str
    amount: float
    amount_label: str
    date: str
    status: str
    status_tone: str


class HistoryFragment(Fragment):
    kind: Literal["history"] = "history"
    entries: Tuple[HistoryEntry, ...] = ()
    empty_message: Optional[str] = None


class ExecutionSuccessFragment(Fragment):
    kind: Literal["execution_success"] = "execution_success"
    title: str = "Payment Successful"
    reference_number: Optional[str]
    executed_at: str


class ViolationsFragment(Fragment):
    kind: Literal["violations"] = "violations"
    items: Tuple[str, ...]

    @computed_field
    @property
    def bullets(self) -> List[str]:
        return [f"• {item}" for item in self.items]


DisplayFragment = Union[
    HeaderFragment,
    MessageFragment,
    TextFragment,
    PaymentDetailsFragment,
    BalanceInquiryFragment,
    HistoryFragment,
    ExecutionSuccessFragment,
    ViolationsFragment,
]


def decision_tone(decision: str) -> str:
    """APPROVE/DENY map to fixed tones; anything else is shown as caution."""
    return DECISION_TONES.get(decision, "caution")


def txn_state_tone(state: str) -> str:
    return "positive" if state in POSITIVE_TXN_STATES else "negative"


def _history_entry(record: TransactionRecord) -> HistoryEntry:
    return HistoryEntry(
        merchant=record.merchant_vpa,
        amount=record.amount,
        amount_label=f"-{format_money(record.amount)}",
        date=format_date(record.timestamp),
        status=record.state,
        status_tone=txn_state_tone(record.state),
    )


def _round2(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None


def classify(response: CommandResponse, rendered_at: datetime) -> Tuple[DisplayFragment, ...]:
    """Derive the ordered fragments for one command response."""
    fragments: List[DisplayFragment] = [
        HeaderFragment(
            decision=response.policy_decision,
            tone=decision_tone(response.policy_decision),
            time=format_clock(rendered_at),
        ),
        MessageFragment(text=response.message),
    ]

    intent_type = response.intent.intent_type if response.intent else None
    result = response.execution_result

    if response.intent is not None and intent_type == IntentType.PAYMENT.value:
        fragments.append(
            PaymentDetailsFragment(
                merchant=response.intent.merchant_vpa or UNKNOWN_MERCHANT,
                amount=response.intent.amount,
                amount_label=format_money(response.intent.amount),
            )
        )

    if intent_type == IntentType.BALANCE_INQUIRY.value and result is not None:
        fragments.append(
            BalanceInquiryFragment(
                balance=_round2(result.balance),
                daily_spend=_round2(result.daily_spend),
                balance_label=format_money(result.balance, decimals=2),
                spend_label=f"{format_money(result.daily_spend, decimals=2)} / {format_money(REFERENCE_SPEND_CAP)}",
                reference_cap=REFERENCE_SPEND_CAP,
                spend_percent=spend_percent(result.daily_spend or 0.0, REFERENCE_SPEND_CAP),
            )
        )

    if intent_type == IntentType.TRANSACTION_HISTORY.value and result is not None and result.history is not None:
        entries = tuple(_history_entry(record) for record in result.history)
        fragments.append(
            HistoryFragment(
                entries=entries,
                empty_message=None if entries else NO_TRANSACTIONS_MESSAGE,
            )
        )

    if response.status == "executed" and result is not None:
        fragments.append(
            ExecutionSuccessFragment(
                reference_number=result.reference_number,
                executed_at=format_local_time(result.executed_at),
            )
        )

    violations = response.risk_info.violations if response.risk_info else None
    if response.policy_decision == PolicyDecision.DENY.value and violations:
        fragments.append(ViolationsFragment(items=tuple(violations)))

    return tuple(fragments)


def render_turn(item: HistoryItem) -> Tuple[DisplayFragment, ...]:
    """Fragments for any history turn, in display order."""
    if item.kind is HistoryKind.SYSTEM and item.response is not None:
        return classify(item.response, rendered_at=item.created_at)
    tone = "error" if item.kind is HistoryKind.ERROR else "user"
    return (TextFragment(text=item.text or "", tone=tone),)
