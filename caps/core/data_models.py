"""Data models shared by the CAPS Voice session core."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HistoryKind(str, Enum):
    """Kinds of turns kept in the session history log."""
    USER = "user"
    SYSTEM = "system"
    ERROR = "error"


class PolicyDecision(str, Enum):
    APPROVE = "APPROVE"
    DENY = "DENY"
    REVIEW = "REVIEW"


class IntentType(str, Enum):
    PAYMENT = "PAYMENT"
    BALANCE_INQUIRY = "BALANCE_INQUIRY"
    TRANSACTION_HISTORY = "TRANSACTION_HISTORY"


# Wire timestamps are usually ISO strings or epoch milliseconds but are kept
# as received; display code degrades anything unparseable to a placeholder.
WireTimestamp = Any


class Intent(BaseModel):
    """Classified purpose of a spoken command.

    ``intent_type`` stays a plain string: the command service may add new
    intents and the client must keep rendering the rest of the response.
    """

    intent_type: str
    merchant_vpa: Optional[str] = None
    amount: Optional[float] = None


class TransactionRecord(BaseModel):
    """A transaction as returned inside a command execution result."""

    merchant_vpa: str
    amount: float
    state: str
    timestamp: WireTimestamp = None


class ExecutionResult(BaseModel):
    balance: Optional[float] = None
    daily_spend: Optional[float] = None
    history: Optional[List[TransactionRecord]] = None
    reference_number: Optional[str] = None
    executed_at: WireTimestamp = None


class RiskInfo(BaseModel):
    violations: Optional[List[str]] = None


class CommandResponse(BaseModel):
    """Structured verdict returned by the command service for one transcript."""

    policy_decision: str
    message: str = ""
    intent: Optional[Intent] = None
    status: Optional[str] = None
    execution_result: Optional[ExecutionResult] = None
    risk_info: Optional[RiskInfo] = None


class HistoryItem(BaseModel):
    """One turn of the session history. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    kind: HistoryKind
    text: Optional[str] = None
    response: Optional[CommandResponse] = None
    created_at: datetime = Field(default_factory=datetime.now)


class MerchantScoreData(BaseModel):
    """Crowdsourced trust score of a single merchant."""

    merchant_vpa: str
    badge: str
    badge_emoji: str = ""
    scam_rate: float = Field(ge=0, le=100)
    community_score: float = Field(ge=0, le=1)
    scam_reports: int = 0
    legitimate_reports: int = 0
    total_reports: int = 0
    risk_state: str = "UNFLAGGED"


class FraudStats(BaseModel):
    total_reports: int
    total_merchants: int
    flagged_merchants: int
    safe_merchants: int


class ReportResult(BaseModel):
    updated_badge: str
    updated_badge_emoji: str = ""


class Transaction(BaseModel):
    """Display form of a transaction on the account panel."""

    merchant: str
    amount: float
    status: str
    timestamp: WireTimestamp = None

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "Transaction":
        return cls(
            merchant=record.merchant_vpa,
            amount=record.amount,
            status=record.state,
            timestamp=record.timestamp,
        )


class AccountSnapshot(BaseModel):
    """Account state feeding the transaction history panel."""

    transactions: List[Transaction] = Field(default_factory=list)
    balance: float = 0.0
    daily_spend: float = 0.0
    daily_limit: float = 0.0
