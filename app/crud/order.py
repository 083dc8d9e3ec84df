# app/crud/order.py
from typing import List
from app.clients.supabase import SupabaseClient
from app.core.exceptions import NotFoundError
from app.schemas.order import (
    Order, OrderCreate, OrderStatus, OrderWithAffiliate, ReferralAnalytics
)

TABLE = "orders"
# Embeds the referring affiliate's name and code through the affiliate_id foreign key
WITH_AFFILIATE = "*,affiliates!affiliate_id(name,referral_code)"


async def create_order(store: SupabaseClient, order_data: OrderCreate) -> OrderWithAffiliate:
    """Stores an order and returns it with its generated id and timestamps."""
    payload = order_data.model_dump(exclude_none=True)
    rows = await store.insert(TABLE, [payload], columns=WITH_AFFILIATE)
    return OrderWithAffiliate.model_validate(rows[0])


async def get_orders_with_affiliate(store: SupabaseClient, limit: int | None = None) -> List[OrderWithAffiliate]:
    """Orders that carry a referral, newest first."""
    rows = await store.select(
        TABLE,
        columns=WITH_AFFILIATE,
        not_null=["affiliate_id"],
        order_by="created_at",
        ascending=False,
        limit=limit,
    )
    return [OrderWithAffiliate.model_validate(row) for row in rows]


async def get_orders_by_affiliate(store: SupabaseClient, affiliate_id: str) -> List[Order]:
    rows = await store.select(TABLE, eq={"affiliate_id": affiliate_id}, order_by="created_at", ascending=False)
    return [Order.model_validate(row) for row in rows]


async def update_order_status(store: SupabaseClient, order_id: str, status: OrderStatus) -> OrderWithAffiliate:
    """Overwrites the status. Any status may follow any other."""
    rows = await store.update(TABLE, {"status": status}, eq={"id": order_id}, columns=WITH_AFFILIATE)
    if not rows:
        raise NotFoundError(f"Order {order_id} not found")
    return OrderWithAffiliate.model_validate(rows[0])


async def get_referred_order_totals(store: SupabaseClient) -> List[dict]:
    """Aggregation columns of every referred order."""
    return await store.select(TABLE, columns="total,affiliate_id,created_at,referred_by,referral_code", not_null=["affiliate_id"])


async def get_affiliate_statuses(store: SupabaseClient) -> List[dict]:
    return await store.select("affiliates", columns="id,name,referral_code,status")


async def get_referral_stats_rpc(store: SupabaseClient) -> dict | None:
    """Aggregate computed by the `get_referral_stats()` database function."""
    data = await store.rpc("get_referral_stats")
    if isinstance(data, list):
        return data[0] if data else None
    return data


async def get_referral_analytics_view(store: SupabaseClient) -> List[ReferralAnalytics]:
    rows = await store.select("referral_analytics")
    return [ReferralAnalytics.model_validate(row) for row in rows]
