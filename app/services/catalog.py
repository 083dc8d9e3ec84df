# app/services/catalog.py

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional
from redis.asyncio import Redis

from app.clients.supabase import SupabaseClient
from app.core.config import settings
from app.crud import menu as crud_menu
from app.schemas.menu import MenuItem, MenuItemResponse, PaymentMethod

logger = logging.getLogger(__name__)

MENU_CACHE_KEY = "menu:all"


def _as_aware(value: datetime) -> datetime:
    # Naive timestamps from the database are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_discount_active(item: MenuItem, now: datetime) -> bool:
    """
    True when the item's discount applies at `now`: the discount flag is on, a
    discount price is set, and `now` lies within whichever window bounds exist.
    """
    if not item.discount_active or item.discount_price is None:
        return False
    now = _as_aware(now)
    if item.discount_start_date and now < _as_aware(item.discount_start_date):
        return False
    if item.discount_end_date and now > _as_aware(item.discount_end_date):
        return False
    return True


def get_effective_price(item: MenuItem, now: datetime) -> float:
    if is_discount_active(item, now):
        return item.discount_price
    return item.base_price


def to_response(item: MenuItem, now: datetime) -> MenuItemResponse:
    return MenuItemResponse(
        **item.model_dump(),
        effective_price=get_effective_price(item, now),
        is_on_discount=is_discount_active(item, now),
    )


async def get_all_menu_items(store: SupabaseClient, redis: Redis) -> List[MenuItem]:
    """
    Full menu with variations and add-ons, cached in Redis.
    Prices are never derived from the cache: effective prices are computed on read.
    """
    cached = await redis.get(MENU_CACHE_KEY)
    if cached:
        try:
            return [MenuItem.model_validate(i) for i in json.loads(cached)]
        except Exception as e:
            logger.warning(f"Failed to validate cached menu: {e}. Fetching fresh menu.")

    items = await crud_menu.get_menu_items(store)
    await redis.set(
        MENU_CACHE_KEY,
        json.dumps([i.model_dump(mode="json") for i in items]),
        ex=settings.MENU_CACHE_TTL_SECONDS,
    )
    logger.info(f"Fetched {len(items)} menu items from the database.")
    return items


async def get_menu(
    store: SupabaseClient,
    redis: Redis,
    category: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[MenuItemResponse]:
    """Available menu items for the storefront, optionally limited to one category."""
    now = now or datetime.now(timezone.utc)
    items = await get_all_menu_items(store, redis)
    return [
        to_response(item, now)
        for item in items
        if item.available and (not category or category == "all" or item.category == category)
    ]


async def get_menu_item(store: SupabaseClient, item_id: str) -> MenuItem | None:
    """Reads one item straight from the database so cart prices are current."""
    return await crud_menu.get_menu_item(store, item_id)


async def invalidate_menu_cache(redis: Redis) -> None:
    await redis.delete(MENU_CACHE_KEY)
    logger.info("Menu cache invalidated.")


async def get_payment_methods(store: SupabaseClient) -> List[PaymentMethod]:
    return await crud_menu.get_active_payment_methods(store)
