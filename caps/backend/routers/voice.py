from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from caps.core.errors import DispatchInProgressError

from ..schemas import HistoryResponse, HistoryTurn, TranscriptUpdateRequest, VoiceStateResponse
from ..services.classifier import render_turn
from ..state import SessionState, get_session

router = APIRouter(prefix="/api", tags=["voice"])

EMPTY_HISTORY_HINT = 'Tap the mic and say: "Pay shop@upi 100 rupees"'


def _history(session: SessionState) -> HistoryResponse:
    turns = [
        HistoryTurn(index=i, kind=item.kind, fragments=list(render_turn(item)))
        for i, item in enumerate(session.history.items())
    ]
    return HistoryResponse(
        turns=turns,
        processing=session.dispatcher.processing,
        empty_hint=None if turns else EMPTY_HISTORY_HINT,
    )


@router.post("/voice/start", response_model=VoiceStateResponse)
async def start_listening(session: SessionState = Depends(get_session)):
    """Press: start capturing. Ignored while a command is being processed."""
    session.voice.start()
    return session.voice.snapshot()


@router.post("/voice/transcript", response_model=VoiceStateResponse)
async def update_transcript(req: TranscriptUpdateRequest, session: SessionState = Depends(get_session)):
    """Live recognizer text pushed by the UI while the button is held."""
    session.capture.update(req.transcript)
    return session.voice.snapshot()


@router.post("/voice/stop")
async def stop_listening(session: SessionState = Depends(get_session)):
    """Release: submit the transcript (if any) and return the updated history."""
    try:
        await session.voice.stop()
    except DispatchInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"voice": session.voice.snapshot(), "history": _history(session)}


@router.get("/voice/state", response_model=VoiceStateResponse)
async def voice_state(session: SessionState = Depends(get_session)):
    return session.voice.snapshot()


@router.get("/history", response_model=HistoryResponse)
async def history(session: SessionState = Depends(get_session)):
    return _history(session)
