"""Tests for the command response classifier."""

from datetime import datetime, timezone

from caps.backend.services.classifier import (
    NO_TRANSACTIONS_MESSAGE,
    REFERENCE_SPEND_CAP,
    classify,
    decision_tone,
    render_turn,
)
from caps.backend.services.formatting import DATE_PLACEHOLDER, TIME_PLACEHOLDER
from caps.core.data_models import CommandResponse, HistoryItem, HistoryKind

RENDERED_AT = datetime(2026, 10, 19, 14, 5, 9)


def _kinds(fragments):
    return [fragment.kind for fragment in fragments]


def test_completed_payment_shows_details_and_receipt():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "Paid shop@upi",
            "intent": {"intent_type": "PAYMENT", "merchant_vpa": "shop@upi", "amount": 100},
            "status": "executed",
            "execution_result": {"reference_number": "REF123", "executed_at": "2026-10-19T10:15:00"},
        }
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message", "payment_details", "execution_success"]
    header, message, payment, receipt = fragments
    assert header.decision == "APPROVE"
    assert header.tone == "positive"
    assert header.time == "14:05"
    assert message.text == "Paid shop@upi"
    assert payment.merchant == "shop@upi"
    assert payment.amount == 100
    assert payment.amount_label == "₹100"
    assert receipt.reference_number == "REF123"
    assert receipt.executed_at == "10:15:00"


def test_denied_command_without_intent_only_lists_violations():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "DENY",
            "message": "Blocked",
            "risk_info": {"violations": ["daily limit exceeded"]},
        }
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message", "violations"]
    assert fragments[0].tone == "negative"
    assert fragments[2].items == ("daily limit exceeded",)
    assert fragments[2].bullets == ["• daily limit exceeded"]
    assert fragments[2].model_dump()["bullets"] == ["• daily limit exceeded"]


def test_violations_need_deny_and_a_non_empty_list():
    approved = CommandResponse(policy_decision="APPROVE", message="ok", risk_info={"violations": ["x"]})
    denied_empty = CommandResponse(policy_decision="DENY", message="no", risk_info={"violations": []})

    assert _kinds(classify(approved, RENDERED_AT)) == ["header", "message"]
    assert _kinds(classify(denied_empty, RENDERED_AT)) == ["header", "message"]


def test_denied_payment_keeps_payment_card_next_to_violations():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "DENY",
            "message": "Merchant flagged",
            "intent": {"intent_type": "PAYMENT", "amount": 40.5},
            "risk_info": {"violations": ["merchant blocked", "velocity"]},
        }
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message", "payment_details", "violations"]
    assert fragments[2].merchant == "Unknown"
    assert fragments[2].amount_label == "₹40.5"
    assert len(fragments[3].items) == 2


def test_balance_inquiry_rounds_to_two_decimals():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "Here is your balance",
            "intent": {"intent_type": "BALANCE_INQUIRY"},
            "execution_result": {"balance": 1234.567, "daily_spend": 500.004},
        }
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message", "balance_inquiry"]
    balance = fragments[2]
    assert balance.balance == 1234.57
    assert balance.daily_spend == 500.0
    assert balance.balance_label == "₹1234.57"
    assert balance.spend_label == "₹500.00 / ₹2000"
    assert balance.reference_cap == REFERENCE_SPEND_CAP
    assert abs(balance.spend_percent - 25.0002) < 1e-9


def test_balance_inquiry_without_execution_result_is_skipped():
    response = CommandResponse.model_validate(
        {"policy_decision": "REVIEW", "message": "Checking", "intent": {"intent_type": "BALANCE_INQUIRY"}}
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message"]
    assert fragments[0].tone == "caution"


def test_balance_spend_bar_is_capped():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "",
            "intent": {"intent_type": "BALANCE_INQUIRY"},
            "execution_result": {"balance": 10, "daily_spend": 5000},
        }
    )

    assert classify(response, RENDERED_AT)[2].spend_percent == 100.0


def test_empty_transaction_history_renders_explicit_empty_state():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "Your transactions",
            "intent": {"intent_type": "TRANSACTION_HISTORY"},
            "execution_result": {"history": []},
        }
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message", "history"]
    assert fragments[2].entries == ()
    assert fragments[2].empty_message == NO_TRANSACTIONS_MESSAGE


def test_transaction_history_entries_and_status_pills():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "Your transactions",
            "intent": {"intent_type": "TRANSACTION_HISTORY"},
            "execution_result": {
                "history": [
                    {"merchant_vpa": "tea@upi", "amount": 20, "state": "completed", "timestamp": "2026-10-18T09:00:00"},
                    {"merchant_vpa": "bus@upi", "amount": 35.5, "state": "executed"},
                    {"merchant_vpa": "bad@upi", "amount": 999, "state": "failed", "timestamp": "yesterday-ish"},
                ]
            },
        }
    )

    history = classify(response, RENDERED_AT)[2]

    assert history.empty_message is None
    assert [entry.merchant for entry in history.entries] == ["tea@upi", "bus@upi", "bad@upi"]
    assert [entry.status_tone for entry in history.entries] == ["positive", "positive", "negative"]
    assert history.entries[0].date == "18 Oct 2026"
    assert history.entries[1].date == DATE_PLACEHOLDER
    assert history.entries[2].date == DATE_PLACEHOLDER
    assert history.entries[1].amount_label == "-₹35.5"


def test_non_string_timestamps_do_not_reject_the_response():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "Your transactions",
            "intent": {"intent_type": "TRANSACTION_HISTORY"},
            "status": "executed",
            "execution_result": {
                "history": [
                    {"merchant_vpa": "tea@upi", "amount": 20, "state": "completed", "timestamp": 1760860800000},
                    {"merchant_vpa": "odd@upi", "amount": 5, "state": "completed", "timestamp": {"at": "noon"}},
                ],
                "reference_number": "REF5",
                "executed_at": 1760860800000,
            },
        }
    )

    fragments = classify(response, RENDERED_AT)
    moment = datetime.fromtimestamp(1760860800, tz=timezone.utc).astimezone()

    assert _kinds(fragments) == ["header", "message", "history", "execution_success"]
    assert fragments[2].entries[0].date == moment.strftime("%d %b %Y")
    assert fragments[2].entries[1].date == DATE_PLACEHOLDER
    assert fragments[3].executed_at == moment.strftime("%H:%M:%S")


def test_history_intent_without_history_list_is_skipped():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "",
            "intent": {"intent_type": "TRANSACTION_HISTORY"},
            "execution_result": {"balance": 10},
        }
    )

    assert _kinds(classify(response, RENDERED_AT)) == ["header", "message"]


def test_malformed_execution_time_uses_placeholder():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "",
            "status": "executed",
            "execution_result": {"reference_number": "REF9", "executed_at": "not-a-time"},
        }
    )

    receipt = classify(response, RENDERED_AT)[-1]

    assert receipt.kind == "execution_success"
    assert receipt.executed_at == TIME_PLACEHOLDER


def test_unknown_intent_and_decision_still_render():
    response = CommandResponse.model_validate(
        {"policy_decision": "ESCALATE", "message": "Hmm", "intent": {"intent_type": "SPLIT_BILL"}}
    )

    fragments = classify(response, RENDERED_AT)

    assert _kinds(fragments) == ["header", "message"]
    assert decision_tone("ESCALATE") == "caution"


def test_classify_is_deterministic():
    response = CommandResponse.model_validate(
        {
            "policy_decision": "APPROVE",
            "message": "Paid",
            "intent": {"intent_type": "PAYMENT", "merchant_vpa": "shop@upi", "amount": 100},
            "status": "executed",
            "execution_result": {"reference_number": "REF123", "executed_at": "2026-10-19T10:15:00"},
        }
    )

    assert classify(response, RENDERED_AT) == classify(response, RENDERED_AT)


def test_render_turn_for_user_and_error_turns():
    user = render_turn(HistoryItem(kind=HistoryKind.USER, text="Pay shop@upi 100 rupees"))
    error = render_turn(HistoryItem(kind=HistoryKind.ERROR, text="Failed to connect to CAPS server."))

    assert len(user) == 1 and user[0].kind == "text" and user[0].tone == "user"
    assert user[0].text == "Pay shop@upi 100 rupees"
    assert error[0].tone == "error"


def test_render_turn_uses_turn_time_for_header():
    item = HistoryItem(
        kind=HistoryKind.SYSTEM,
        response=CommandResponse(policy_decision="APPROVE", message="ok"),
        created_at=datetime(2026, 1, 2, 8, 30),
    )

    assert render_turn(item)[0].time == "08:30"
