from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from caps.core.errors import InputValidationError

from ..schemas import ReportFormEditRequest, ReportRequest
from ..state import SessionState, get_session

router = APIRouter(prefix="/api/fraud", tags=["fraud"])


@router.get("")
async def fraud_panel(session: SessionState = Depends(get_session)):
    return session.fraud.to_dict()


@router.post("/open")
async def open_panel(session: SessionState = Depends(get_session)):
    """Open the fraud intelligence panel and load merchants and stats."""
    await session.fraud.open_panel()
    return session.fraud.to_dict()


@router.post("/close")
async def close_panel(session: SessionState = Depends(get_session)):
    session.fraud.close_panel()
    return session.fraud.to_dict()


@router.post("/refresh")
async def refresh_panel(session: SessionState = Depends(get_session)):
    await session.fraud.refresh()
    return session.fraud.to_dict()


@router.post("/report-form/toggle")
async def toggle_report_form(session: SessionState = Depends(get_session)):
    session.fraud.toggle_report_form()
    return session.fraud.to_dict()


@router.patch("/report-form")
async def edit_report_form(req: ReportFormEditRequest, session: SessionState = Depends(get_session)):
    session.fraud.edit_form(vpa=req.merchant_vpa, category=req.report_type, reason=req.reason)
    return session.fraud.to_dict()


@router.post("/report")
async def report_merchant(req: ReportRequest, session: SessionState = Depends(get_session)):
    """
    Report a merchant as scam, suspicious or legitimate.

    A failed submission is not an HTTP error: the inline message is returned in
    ``report_form.result_message`` and the form keeps its inputs.
    """
    try:
        result = await session.fraud.report(vpa=req.merchant_vpa, category=req.report_type, reason=req.reason)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "reported": result is not None,
        "result": result.model_dump() if result else None,
        "panel": session.fraud.to_dict(),
    }
