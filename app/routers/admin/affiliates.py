# app/routers/admin/affiliates.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.clients.supabase import SupabaseClient, get_store
from app.core import locales
from app.core.exceptions import ConflictError, NotFoundError
from app.crud import affiliate as crud_affiliate
from app.crud import order as crud_order
from app.schemas.affiliate import Affiliate, AffiliateCreate, AffiliateUpdate, GeneratedCode
from app.schemas.order import Order
from app.services import referral as referral_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[Affiliate])
async def list_affiliates(store: SupabaseClient = Depends(get_store)):
    """[ADMIN] All affiliates, newest first."""
    return await crud_affiliate.get_affiliates(store)


@router.post("", response_model=Affiliate, status_code=status.HTTP_201_CREATED)
async def create_affiliate(
    affiliate_in: AffiliateCreate,
    store: SupabaseClient = Depends(get_store),
):
    """
    [ADMIN] Registers an affiliate. Without `referral_code` a code is generated
    from the name.
    """
    try:
        affiliate = await referral_service.register_affiliate(store, affiliate_in)
    except ConflictError as e:
        detail = (
            locales.ERROR_DUPLICATE_REFERRAL_CODE.format(code=affiliate_in.referral_code)
            if affiliate_in.referral_code
            else e.message
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    logger.info(f"Admin created affiliate {affiliate.id} ('{affiliate.referral_code}').")
    return affiliate


# Declared before /{affiliate_id} so the path is not taken for an id
@router.get("/generate-code", response_model=GeneratedCode)
async def generate_code(name: str = Query(..., min_length=1)):
    """[ADMIN] Suggests a code for the dashboard form. Uniqueness is checked on save."""
    code = referral_service.generate_referral_code(name)
    return GeneratedCode(referral_code=code, referral_link=referral_service.build_referral_link(code))


@router.get("/{affiliate_id}", response_model=Affiliate)
async def get_affiliate(affiliate_id: str, store: SupabaseClient = Depends(get_store)):
    try:
        return await crud_affiliate.get_affiliate(store, affiliate_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_AFFILIATE_NOT_FOUND)


@router.patch("/{affiliate_id}", response_model=Affiliate)
async def update_affiliate(
    affiliate_id: str,
    updates: AffiliateUpdate,
    store: SupabaseClient = Depends(get_store),
):
    try:
        return await crud_affiliate.update_affiliate(store, affiliate_id, updates)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_AFFILIATE_NOT_FOUND)
    except ConflictError as e:
        detail = (
            locales.ERROR_DUPLICATE_REFERRAL_CODE.format(code=updates.referral_code)
            if updates.referral_code
            else e.message
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


@router.delete("/{affiliate_id}")
async def delete_affiliate(affiliate_id: str, store: SupabaseClient = Depends(get_store)):
    """[ADMIN] Deletes an affiliate. Their orders keep the stored name and code."""
    try:
        await crud_affiliate.delete_affiliate(store, affiliate_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_AFFILIATE_NOT_FOUND)
    logger.info(f"Admin deleted affiliate {affiliate_id}.")
    return {"status": "ok", "message": locales.SUCCESS_AFFILIATE_DELETED}


@router.get("/{affiliate_id}/orders", response_model=List[Order])
async def get_affiliate_orders(affiliate_id: str, store: SupabaseClient = Depends(get_store)):
    """[ADMIN] Orders attributed to one affiliate, newest first."""
    return await crud_order.get_orders_by_affiliate(store, affiliate_id)
