"""End-to-end tests of the session server with fake remote services."""

import uvicorn
from fastapi.testclient import TestClient

from caps.backend.app import create_app, run
from caps.backend.config import settings
from caps.backend.state import SessionState
from caps.core.data_models import CommandResponse, FraudStats, MerchantScoreData, ReportResult
from caps.core.errors import ConnectivityError


class FakeCapsClient:
    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.closed = False
        self.reports = []

    async def submit_command(self, transcript):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return CommandResponse.model_validate(outcome)

    async def list_merchant_scores(self):
        return [
            MerchantScoreData(
                merchant_vpa="scam@upi",
                badge="LIKELY_SCAM",
                badge_emoji="🚨",
                scam_rate=80,
                community_score=0.2,
                scam_reports=8,
                legitimate_reports=2,
                total_reports=10,
                risk_state="WATCHLIST",
            )
        ]

    async def get_fraud_stats(self):
        return FraudStats(total_reports=10, total_merchants=1, flagged_merchants=1, safe_merchants=0)

    async def submit_merchant_report(self, vpa, category, reason=None):
        self.reports.append((vpa, category, reason))
        return ReportResult(updated_badge="CONFIRMED_SCAM", updated_badge_emoji="⛔")

    async def close(self):
        self.closed = True


def _client(outcomes=None):
    fake = FakeCapsClient(outcomes)
    app = create_app(SessionState(fake, daily_limit=2000))
    return TestClient(app), fake


def _speak(client, text):
    client.post("/api/voice/start")
    client.post("/api/voice/transcript", json={"transcript": text})
    return client.post("/api/voice/stop")


def test_payment_command_round_trip():
    payment = {
        "policy_decision": "APPROVE",
        "message": "Payment sent",
        "intent": {"intent_type": "PAYMENT", "merchant_vpa": "shop@upi", "amount": 100},
        "status": "executed",
        "execution_result": {"reference_number": "REF123", "executed_at": "2026-10-19T10:15:00"},
    }
    client, fake = _client([payment])

    with client:
        assert client.get("/api/history").json()["empty_hint"]
        started = client.post("/api/voice/start").json()
        assert started["state"] == "listening"
        assert started["prompt"] == "Listening..."
        live = client.post("/api/voice/transcript", json={"transcript": "Pay shop@upi 100 rupees"}).json()
        assert live["prompt"] == "Pay shop@upi 100 rupees"
        body = client.post("/api/voice/stop").json()

    assert fake.closed is True
    assert body["voice"]["state"] == "idle"
    turns = body["history"]["turns"]
    assert [turn["kind"] for turn in turns] == ["user", "system"]
    assert turns[0]["fragments"][0]["text"] == "Pay shop@upi 100 rupees"
    kinds = [fragment["kind"] for fragment in turns[1]["fragments"]]
    assert kinds == ["header", "message", "payment_details", "execution_success"]
    assert turns[1]["fragments"][2]["merchant"] == "shop@upi"
    assert turns[1]["fragments"][3]["reference_number"] == "REF123"


def test_connectivity_failure_becomes_error_turn():
    client, _ = _client([ConnectivityError("refused")])

    with client:
        body = _speak(client, "Check my balance").json()

    turns = body["history"]["turns"]
    assert [turn["kind"] for turn in turns] == ["user", "error"]
    assert turns[1]["fragments"][0]["text"] == "Failed to connect to CAPS server."


def test_blank_transcript_is_not_submitted():
    client, _ = _client([])

    with client:
        client.post("/api/voice/start")
        body = client.post("/api/voice/stop").json()

    assert body["history"]["turns"] == []
    assert body["voice"]["prompt"] == "Hold to Speak"


def test_account_panel_follows_balance_inquiry():
    balance = {
        "policy_decision": "APPROVE",
        "message": "Balance",
        "intent": {"intent_type": "BALANCE_INQUIRY"},
        "execution_result": {"balance": 4200.5, "daily_spend": 1200},
    }
    client, _ = _client([balance])

    with client:
        assert client.get("/api/account").json()["empty_message"] == "No transactions yet"
        _speak(client, "What's my balance")
        account = client.get("/api/account").json()

    assert account["balance"] == 4200.5
    assert abs(account["spend_percent"] - 60.0) < 1e-9
    assert account["spend_tone"] == "warning"


def test_fraud_panel_open_and_report():
    client, fake = _client()

    with client:
        opened = client.post("/api/fraud/open").json()
        assert opened["merchant_count"] == 1
        assert opened["merchants"][0]["style"]["tone"] == "danger"

        rejected = client.post("/api/fraud/report", json={"merchant_vpa": "   "})
        assert rejected.status_code == 400

        reported = client.post(
            "/api/fraud/report",
            json={"merchant_vpa": "scam@upi", "report_type": "SUSPICIOUS", "reason": "fake QR"},
        ).json()
        closed = client.post("/api/fraud/close").json()

    assert fake.reports == [("scam@upi", "SUSPICIOUS", "fake QR")]
    assert reported["reported"] is True
    form = reported["panel"]["report_form"]
    assert form["vpa"] == "" and form["reason"] == ""
    assert form["category"] == "SUSPICIOUS"
    assert form["result_message"] == "⛔ Reported! Badge: CONFIRMED SCAM"
    assert closed["panel_open"] is False


def test_invalid_report_category_is_rejected_by_schema():
    client, _ = _client()

    with client:
        response = client.post("/api/fraud/report", json={"merchant_vpa": "x@upi", "report_type": "FRAUD"})

    assert response.status_code == 422


def test_run_serves_the_app_with_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))
    monkeypatch.setattr(settings, "port", 9091)

    run()

    assert calls == [("caps.backend.app:app", {"host": settings.host, "port": 9091})]
