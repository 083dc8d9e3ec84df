# app/routers/referral.py

from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.clients.supabase import SupabaseClient, get_store
from app.dependencies import get_referral_sessions, get_session_id
from app.schemas.affiliate import ReferralInfo
from app.services import referral as referral_service

router = APIRouter()


@router.get("/referral", response_model=Optional[ReferralInfo])
async def get_referral(
    ref: Optional[str] = Query(None, description="Referral code from the landing URL"),
    session_id: str = Depends(get_session_id),
    store: SupabaseClient = Depends(get_store),
    sessions: referral_service.ReferralSessionStore = Depends(get_referral_sessions),
):
    """
    Resolves the visitor's referral. A `ref` is remembered for the session, so
    later calls without it still return the same affiliate. Unknown or inactive
    codes give null.
    """
    return await referral_service.resolve_referral(store, sessions, session_id, ref)


@router.delete("/referral")
async def clear_referral(
    session_id: str = Depends(get_session_id),
    sessions: referral_service.ReferralSessionStore = Depends(get_referral_sessions),
):
    await sessions.clear(session_id)
    return {"status": "ok"}
