# app/routers/catalog.py

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query, HTTPException, status
from redis.asyncio import Redis
from typing import List, Optional

from app.clients.supabase import SupabaseClient, get_store
from app.core import locales
from app.core.redis import get_redis_client
from app.schemas.menu import MenuItemResponse, PaymentMethod
from app.services import catalog as catalog_service

router = APIRouter()


@router.get("/menu", response_model=List[MenuItemResponse])
async def get_menu(
    category: Optional[str] = Query(None, description="Category to filter by; 'all' or empty for everything"),
    store: SupabaseClient = Depends(get_store),
    redis: Redis = Depends(get_redis_client),
):
    """
    Available menu items with their current effective prices.
    Public endpoint.
    """
    return await catalog_service.get_menu(store, redis, category=category)


@router.get("/menu/{item_id}", response_model=MenuItemResponse)
async def get_menu_item(
    item_id: str,
    store: SupabaseClient = Depends(get_store),
):
    item = await catalog_service.get_menu_item(store, item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_MENU_ITEM_NOT_FOUND)
    return catalog_service.to_response(item, datetime.now(timezone.utc))


@router.get("/payment-methods", response_model=List[PaymentMethod])
async def get_payment_methods(store: SupabaseClient = Depends(get_store)):
    """Active payment methods in display order."""
    return await catalog_service.get_payment_methods(store)
