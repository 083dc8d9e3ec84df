# app/crud/affiliate.py
from typing import List
from app.clients.supabase import SupabaseClient
from app.core.exceptions import NotFoundError
from app.schemas.affiliate import Affiliate, AffiliateUpdate

TABLE = "affiliates"


async def get_affiliates(store: SupabaseClient) -> List[Affiliate]:
    """All affiliates, newest first."""
    rows = await store.select(TABLE, order_by="created_at", ascending=False)
    return [Affiliate.model_validate(row) for row in rows]


async def get_affiliate(store: SupabaseClient, affiliate_id: str) -> Affiliate:
    rows = await store.select(TABLE, eq={"id": affiliate_id}, limit=1)
    if not rows:
        raise NotFoundError(f"Affiliate {affiliate_id} not found")
    return Affiliate.model_validate(rows[0])


async def create_affiliate(store: SupabaseClient, data: dict) -> Affiliate:
    """
    Inserts an affiliate. Uniqueness of `referral_code` is enforced by the
    database; a duplicate surfaces as ConflictError.
    """
    rows = await store.insert(TABLE, [data])
    return Affiliate.model_validate(rows[0])


async def update_affiliate(store: SupabaseClient, affiliate_id: str, updates: AffiliateUpdate) -> Affiliate:
    values = updates.model_dump(exclude_unset=True)
    if not values:
        return await get_affiliate(store, affiliate_id)
    rows = await store.update(TABLE, values, eq={"id": affiliate_id})
    if not rows:
        raise NotFoundError(f"Affiliate {affiliate_id} not found")
    return Affiliate.model_validate(rows[0])


async def delete_affiliate(store: SupabaseClient, affiliate_id: str) -> None:
    """Hard delete. A missing id raises NotFoundError instead of succeeding silently."""
    deleted = await store.delete(TABLE, eq={"id": affiliate_id})
    if not deleted:
        raise NotFoundError(f"Affiliate {affiliate_id} not found")


async def get_active_affiliate_by_code(store: SupabaseClient, referral_code: str) -> Affiliate | None:
    """
    Returns the active affiliate owning `referral_code`, or None when no
    affiliate matches or the match is inactive/suspended.
    """
    rows = await store.select(TABLE, eq={"referral_code": referral_code, "status": "active"}, limit=1)
    if not rows:
        return None
    return Affiliate.model_validate(rows[0])
