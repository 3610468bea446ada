from __future__ import annotations

import httpx
from fastapi import Request

from caps.core.caps_client import CapsAPIClient

from .config import settings
from .services.account_view import AccountStateTracker
from .services.dispatcher import CommandDispatcher, SessionHistoryStore
from .services.fraud_intel import FraudIntelligenceAggregator
from .services.voice_capture import BufferedSpeechCapture, VoiceCaptureController


class SessionState:
    """All state of the single CAPS Voice session served by this process."""

    def __init__(self, client: CapsAPIClient, daily_limit: float):
        self.client = client
        self.history = SessionHistoryStore()
        self.dispatcher = CommandDispatcher(client, self.history)
        self.capture = BufferedSpeechCapture()
        self.voice = VoiceCaptureController(self.capture, self.dispatcher)
        self.fraud = FraudIntelligenceAggregator(client)
        self.account = AccountStateTracker(daily_limit=daily_limit)
        self.history.subscribe(self.account)

    async def close(self) -> None:
        await self.client.close()


def build_session() -> SessionState:
    client = CapsAPIClient(
        api_base_url=settings.caps_api_url,
        fraud_base_url=settings.caps_fraud_api_url,
        timeout=httpx.Timeout(settings.http_timeout, connect=5.0),
    )
    return SessionState(client, daily_limit=settings.daily_limit)


def get_session(request: Request) -> SessionState:
    return request.app.state.session
