import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .data_models import CommandResponse, FraudStats, MerchantScoreData, ReportResult
from .errors import AggregationFetchError, ConnectivityError, ReportSubmissionError

logger = logging.getLogger(__name__)
DEFAULT_TIMEOUT = httpx.Timeout(20.0, connect=5.0)

# Anything in here means the remote answer cannot be trusted.
PROTOCOL_ERRORS = (httpx.HTTPError, ValidationError, ValueError)

REPORT_CATEGORIES = ("SCAM", "SUSPICIOUS", "LEGITIMATE")

_MERCHANT_LIST = TypeAdapter(List[MerchantScoreData])


class CapsAPIClient:
    """Talks to the CAPS command service and its fraud intelligence endpoints."""

    def __init__(
        self,
        api_base_url: str,
        fraud_base_url: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_base_url:
            raise ValueError("api_base_url is required.")

        self.api_base_url = api_base_url.rstrip("/")
        self.fraud_base_url = (fraud_base_url or api_base_url).rstrip("/")
        timeout = timeout or DEFAULT_TIMEOUT
        self._client = httpx.AsyncClient(base_url=self.api_base_url, timeout=timeout, transport=transport)
        if self.fraud_base_url == self.api_base_url:
            self._fraud_client = self._client
        else:
            self._fraud_client = httpx.AsyncClient(base_url=self.fraud_base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Dispose the underlying HTTP clients."""
        await self._client.aclose()
        if self._fraud_client is not self._client:
            await self._fraud_client.aclose()

    async def submit_command(self, transcript: str) -> CommandResponse:
        """Send a finalized transcript to the command service."""
        logger.info("Submitting command (%d chars) to %s", len(transcript), self.api_base_url)
        try:
            response = await self._client.post("/api/process", json={"text": transcript})
            response.raise_for_status()
            return CommandResponse.model_validate(response.json())
        except PROTOCOL_ERRORS as exc:
            logger.error("Command submission failed: %s", exc)
            raise ConnectivityError(str(exc)) from exc

    async def list_merchant_scores(self) -> List[MerchantScoreData]:
        try:
            response = await self._fraud_client.get("/api/fraud/merchants")
            response.raise_for_status()
            payload = response.json()
            if isinstance(payload, dict):
                payload = payload.get("merchants", [])
            return _MERCHANT_LIST.validate_python(payload)
        except PROTOCOL_ERRORS as exc:
            logger.error("Failed to fetch merchant scores: %s", exc)
            raise AggregationFetchError(str(exc)) from exc

    async def get_fraud_stats(self) -> FraudStats:
        try:
            response = await self._fraud_client.get("/api/fraud/stats")
            response.raise_for_status()
            return FraudStats.model_validate(response.json())
        except PROTOCOL_ERRORS as exc:
            logger.error("Failed to fetch fraud stats: %s", exc)
            raise AggregationFetchError(str(exc)) from exc

    async def submit_merchant_report(
        self, vpa: str, category: str, reason: Optional[str] = None
    ) -> ReportResult:
        """Report a merchant and return the badge it was re-scored to."""
        body: Dict[str, Any] = {"merchant_vpa": vpa, "report_type": category}
        if reason:
            body["reason"] = reason

        logger.info("Reporting merchant %s as %s", vpa, category)
        try:
            response = await self._fraud_client.post("/api/fraud/report", json=body)
            response.raise_for_status()
            return ReportResult.model_validate(response.json())
        except PROTOCOL_ERRORS as exc:
            logger.error("Merchant report for %s failed: %s", vpa, exc)
            raise ReportSubmissionError(str(exc)) from exc


@asynccontextmanager
async def caps_client(
    api_base_url: str, fraud_base_url: Optional[str] = None, **kwargs: Any
) -> AsyncIterator[CapsAPIClient]:
    client = CapsAPIClient(api_base_url, fraud_base_url, **kwargs)
    try:
        yield client
    finally:
        await client.close()
