from __future__ import annotations

from fastapi import APIRouter, Depends

from ..state import SessionState, get_session

router = APIRouter(prefix="/api/account", tags=["account"])


@router.get("")
async def account_panel(session: SessionState = Depends(get_session)):
    """Balance, daily spend progress and recent transactions seen this session."""
    return session.account.view().to_dict()
