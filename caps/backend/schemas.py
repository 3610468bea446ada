from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel

from caps.core.data_models import HistoryKind

from .services.classifier import DisplayFragment

ReportCategory = Literal["SCAM", "SUSPICIOUS", "LEGITIMATE"]


# Voice schemas
class TranscriptUpdateRequest(BaseModel):
    transcript: str


class VoiceStateResponse(BaseModel):
    state: Literal["idle", "listening", "submitting"]
    is_listening: bool
    transcript: str
    processing: bool
    prompt: str


# History schemas
class HistoryTurn(BaseModel):
    index: int
    kind: HistoryKind
    fragments: List[DisplayFragment]


class HistoryResponse(BaseModel):
    turns: List[HistoryTurn]
    processing: bool
    empty_hint: Optional[str] = None


# Fraud schemas
class ReportRequest(BaseModel):
    merchant_vpa: str
    report_type: ReportCategory = "SCAM"
    reason: Optional[str] = None


class ReportFormEditRequest(BaseModel):
    merchant_vpa: Optional[str] = None
    report_type: Optional[ReportCategory] = None
    reason: Optional[str] = None
