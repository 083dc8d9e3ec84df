# app/routers/admin/reports.py

from typing import List

from fastapi import APIRouter, Depends

from app.clients.supabase import SupabaseClient, get_store
from app.schemas.order import ReferralAnalytics, ReferralStats
from app.services import reports as reports_service

router = APIRouter()


@router.get("/stats", response_model=ReferralStats)
async def get_referral_stats(store: SupabaseClient = Depends(get_store)):
    """
    [ADMIN] Program-wide totals. Computed by the database when possible,
    otherwise from the raw rows.
    """
    return await reports_service.compute_stats(store)


@router.get("/analytics", response_model=List[ReferralAnalytics])
async def get_referral_analytics(store: SupabaseClient = Depends(get_store)):
    """[ADMIN] Per-affiliate rollup, best sellers first."""
    return await reports_service.get_referral_analytics(store)
