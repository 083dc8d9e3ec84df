# app/routers/admin/orders.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.clients.supabase import SupabaseClient, get_store
from app.core import locales
from app.core.exceptions import NotFoundError
from app.crud import order as crud_order
from app.schemas.order import OrderStatusUpdate, OrderWithAffiliate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[OrderWithAffiliate])
async def list_referred_orders(
    limit: Optional[int] = Query(None, ge=1, description="Only the N most recent referrals"),
    store: SupabaseClient = Depends(get_store),
):
    """
    [ADMIN] Orders that came through an affiliate, with the affiliate's name
    and code, newest first.
    """
    return await crud_order.get_orders_with_affiliate(store, limit=limit)


@router.patch("/{order_id}/status", response_model=OrderWithAffiliate)
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    store: SupabaseClient = Depends(get_store),
):
    try:
        order = await crud_order.update_order_status(store, order_id, status_update.status)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_ORDER_NOT_FOUND)
    logger.info(f"Order {order_id} status set to '{status_update.status}'.")
    return order
