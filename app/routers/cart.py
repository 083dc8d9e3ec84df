# app/routers/cart.py

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from redis.asyncio import Redis

from app.clients.supabase import SupabaseClient, get_store
from app.core import locales
from app.core.redis import get_redis_client
from app.dependencies import get_session_id
from app.schemas.cart import CartItemAdd, CartItemQuantityUpdate, CartResponse
from app.services import cart as cart_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    """Contents of the session cart."""
    cart = await cart_service.load_cart(redis, session_id)
    return cart.to_response()


@router.post("/cart/items", response_model=CartResponse)
async def add_cart_item(
    item_data: CartItemAdd,
    session_id: str = Depends(get_session_id),
    store: SupabaseClient = Depends(get_store),
    redis: Redis = Depends(get_redis_client),
):
    """
    Adds a menu item with the chosen variation and add-ons. The same
    combination added again increments the existing line.
    """
    cart = await cart_service.add_item_to_cart(store, redis, session_id, item_data)
    return cart.to_response()


@router.patch("/cart/items/{line_id}", response_model=CartResponse)
async def update_cart_item_quantity(
    line_id: str,
    update: CartItemQuantityUpdate,
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    """Sets the quantity of a line; 0 or less removes it."""
    cart = await cart_service.load_cart(redis, session_id)
    if not cart.set_quantity(line_id, update.quantity):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_LINE_NOT_IN_CART)
    await cart_service.save_cart(redis, session_id, cart)
    return cart.to_response()


@router.delete("/cart/items/{line_id}")
async def delete_cart_item(
    line_id: str,
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    cart = await cart_service.load_cart(redis, session_id)
    if not cart.remove(line_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_LINE_NOT_IN_CART)
    await cart_service.save_cart(redis, session_id, cart)
    return {"status": "ok", "message": locales.SUCCESS_ITEM_REMOVED_FROM_CART}


@router.delete("/cart")
async def clear_cart(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    await cart_service.clear_cart(redis, session_id)
    return {"status": "ok", "message": locales.SUCCESS_CART_CLEARED}
