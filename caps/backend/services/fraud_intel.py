"""
Fraud intelligence panel: crowdsourced merchant scores, aggregate stats and
merchant reports.

Merchant list and stats are fetched in parallel and applied together. A
failure of either fetch leaves the panel empty instead of half filled. Every
refresh and every open/close bumps an epoch; results that come back under a
stale epoch are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict

from caps.core.caps_client import REPORT_CATEGORIES
from caps.core.data_models import FraudStats, MerchantScoreData, ReportResult
from caps.core.errors import AggregationFetchError, InputValidationError, ReportSubmissionError

logger = logging.getLogger("caps.backend.fraud_intel")

FETCH_ERROR_MESSAGE = "Failed to load fraud data"
REPORT_ERROR_MESSAGE = "Error submitting report"
NO_MERCHANTS_MESSAGE = "No merchant data available"


class FraudIntelService(Protocol):
    async def list_merchant_scores(self) -> List[MerchantScoreData]: ...

    async def get_fraud_stats(self) -> FraudStats: ...

    async def submit_merchant_report(
        self, vpa: str, category: str, reason: Optional[str] = None
    ) -> ReportResult: ...


@dataclass(frozen=True)
class BadgeStyle:
    tone: str
    icon: str
    emphasis: str


BADGE_STYLES = MappingProxyType(
    {
        "CONFIRMED_SCAM": BadgeStyle(tone="danger", icon="shield-x", emphasis="strong"),
        "LIKELY_SCAM": BadgeStyle(tone="danger", icon="shield-alert", emphasis="soft"),
        "CAUTION": BadgeStyle(tone="warning", icon="alert-triangle", emphasis="soft"),
        "UNKNOWN": BadgeStyle(tone="muted", icon="help-circle", emphasis="soft"),
        "LIKELY_SAFE": BadgeStyle(tone="safe", icon="shield-check", emphasis="soft"),
        "VERIFIED_SAFE": BadgeStyle(tone="verified", icon="shield", emphasis="strong"),
    }
)

RISK_STATE_TONES = MappingProxyType(
    {
        "BLOCKED": "negative",
        "WATCHLIST": "caution",
        "TRUSTED": "positive",
    }
)

CATEGORY_LABELS = MappingProxyType(
    {
        "SCAM": "🚨 Scam",
        "SUSPICIOUS": "⚠️ Suspect",
        "LEGITIMATE": "✅ Legit",
    }
)


def badge_style(badge: Any) -> BadgeStyle:
    """Style for a badge; unrecognized values get the UNKNOWN style."""
    if not isinstance(badge, str):
        return BADGE_STYLES["UNKNOWN"]
    return BADGE_STYLES.get(badge, BADGE_STYLES["UNKNOWN"])


def risk_state_tone(risk_state: Any) -> str:
    if not isinstance(risk_state, str):
        return "neutral"
    return RISK_STATE_TONES.get(risk_state, "neutral")


def badge_label(badge: str) -> str:
    return badge.replace("_", " ")


def merchant_card(merchant: MerchantScoreData) -> Dict[str, Any]:
    style = badge_style(merchant.badge)
    return {
        "merchant_vpa": merchant.merchant_vpa,
        "badge": merchant.badge,
        "badge_label": f"{merchant.badge_emoji} {badge_label(merchant.badge)}".strip(),
        "style": asdict(style),
        "scam_rate": merchant.scam_rate,
        "community_percent": round(merchant.community_score * 100),
        "score_hue": merchant.community_score * 120,
        "scam_reports": merchant.scam_reports,
        "legitimate_reports": merchant.legitimate_reports,
        "total_reports": merchant.total_reports,
        "risk_state": merchant.risk_state,
        "risk_state_tone": risk_state_tone(merchant.risk_state),
    }


def stats_items(stats: FraudStats) -> List[Dict[str, Any]]:
    return [
        {"label": "Reports", "value": stats.total_reports},
        {"label": "Merchants", "value": stats.total_merchants},
        {"label": "Flagged", "value": stats.flagged_merchants},
        {"label": "Safe", "value": stats.safe_merchants},
    ]


class FraudView(BaseModel):
    """Everything the panel shows. Replaced as a whole, never patched."""

    model_config = ConfigDict(frozen=True)

    loading: bool = False
    merchants: Tuple[MerchantScoreData, ...] = ()
    stats: Optional[FraudStats] = None
    error: Optional[str] = None


@dataclass
class ReportFormState:
    vpa: str = ""
    category: str = "SCAM"
    reason: str = ""
    submitting: bool = False
    result_message: Optional[str] = None

    @property
    def can_submit(self) -> bool:
        return not self.submitting and bool(self.vpa.strip())


class FraudIntelligenceAggregator:
    def __init__(self, service: FraudIntelService):
        self._service = service
        self._epoch = 0
        self.view = FraudView()
        self.form = ReportFormState()
        self.panel_open = False
        self.show_report = False

    async def open_panel(self) -> bool:
        self.panel_open = True
        return await self.refresh()

    def close_panel(self) -> None:
        """Close the panel; fetches still in flight will be discarded."""
        self.panel_open = False
        self._epoch += 1
        if self.view.loading:
            self.view = self.view.model_copy(update={"loading": False})

    def toggle_report_form(self) -> bool:
        self.show_report = not self.show_report
        return self.show_report

    async def refresh(self) -> bool:
        """
        Fetch merchant scores and stats together.

        Returns True when the outcome (data or the empty failure view) was
        applied, False when a newer refresh or a close superseded this one.
        """
        self._epoch += 1
        epoch = self._epoch
        self.view = self.view.model_copy(update={"loading": True})

        # Wait for both fetches even when one fails early.
        merchants, stats = await asyncio.gather(
            self._service.list_merchant_scores(),
            self._service.get_fraud_stats(),
            return_exceptions=True,
        )

        if epoch != self._epoch:
            logger.info("Dropping fraud refresh from stale epoch %d (current %d)", epoch, self._epoch)
            return False

        failures = [result for result in (merchants, stats) if isinstance(result, BaseException)]
        if failures:
            self.view = FraudView(error=FETCH_ERROR_MESSAGE)
            for exc in failures:
                if isinstance(exc, AggregationFetchError):
                    logger.error("Failed to load fraud data: %s", exc)
                else:
                    logger.error("Unexpected error loading fraud data", exc_info=exc)
            return True

        self.view = FraudView(merchants=tuple(merchants), stats=stats)
        logger.info("Loaded %d merchants for fraud panel", len(merchants))
        return True

    def edit_form(
        self,
        vpa: Optional[str] = None,
        category: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> ReportFormState:
        if category is not None and category not in REPORT_CATEGORIES:
            raise InputValidationError(f"Unknown report category '{category}'.")
        if vpa is not None:
            self.form.vpa = vpa
        if category is not None:
            self.form.category = category
        if reason is not None:
            self.form.reason = reason
        return self.form

    async def report(
        self,
        vpa: Optional[str] = None,
        category: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Optional[ReportResult]:
        """
        Submit the report form, optionally overwriting its fields first.

        On success the panel is refreshed and the identifier and reason are
        cleared; the category stays selected. On failure an inline message is
        set and every input is kept for a retry.

        Raises:
            InputValidationError: blank merchant identifier or unknown category
        """
        if self.form.submitting:
            logger.debug("Report already being submitted; ignoring")
            return None
        form = self.edit_form(vpa=vpa, category=category, reason=reason)

        merchant_vpa = form.vpa.strip()
        if not merchant_vpa:
            raise InputValidationError("Merchant identifier is required.")

        form.submitting = True
        form.result_message = None
        try:
            result = await self._service.submit_merchant_report(
                merchant_vpa, form.category, form.reason.strip() or None
            )
        except ReportSubmissionError as exc:
            logger.warning("Report for %s failed: %s", merchant_vpa, exc)
            form.result_message = REPORT_ERROR_MESSAGE
            return None
        finally:
            form.submitting = False

        form.result_message = (
            f"{result.updated_badge_emoji} Reported! Badge: {badge_label(result.updated_badge)}".strip()
        )
        form.vpa = ""
        form.reason = ""
        await self.refresh()
        return result

    def to_dict(self) -> Dict[str, Any]:
        view = self.view
        merchants = [merchant_card(m) for m in view.merchants]
        empty_message = None
        if not view.loading and not view.error and not merchants:
            empty_message = NO_MERCHANTS_MESSAGE
        return {
            "panel_open": self.panel_open,
            "loading": view.loading,
            "error": view.error,
            "stats": stats_items(view.stats) if view.stats else None,
            "merchant_count": len(merchants),
            "merchants": merchants,
            "merchants_empty_message": empty_message,
            "show_report": self.show_report,
            "report_form": {
                **asdict(self.form),
                "can_submit": self.form.can_submit,
                "categories": [{"value": key, "label": label} for key, label in CATEGORY_LABELS.items()],
            },
        }
