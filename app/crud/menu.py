# app/crud/menu.py
from typing import List
from app.clients.supabase import SupabaseClient
from app.schemas.menu import MenuItem, PaymentMethod

WITH_OPTIONS = "*,variations(*),add_ons(*)"


async def get_menu_items(store: SupabaseClient) -> List[MenuItem]:
    rows = await store.select("menu_items", columns=WITH_OPTIONS, order_by="created_at")
    return [MenuItem.model_validate(row) for row in rows]


async def get_menu_item(store: SupabaseClient, item_id: str) -> MenuItem | None:
    rows = await store.select("menu_items", columns=WITH_OPTIONS, eq={"id": item_id}, limit=1)
    if not rows:
        return None
    return MenuItem.model_validate(rows[0])


async def get_active_payment_methods(store: SupabaseClient) -> List[PaymentMethod]:
    rows = await store.select("payment_methods", eq={"active": True}, order_by="sort_order")
    return [PaymentMethod.model_validate(row) for row in rows]
