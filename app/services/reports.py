# app/services/reports.py

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter

from app.clients.supabase import SupabaseClient
from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.crud import order as crud_order
from app.schemas.order import ReferralAnalytics, ReferralStats

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    parsed = _datetime_adapter.validate_python(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _period_starts(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """Start of the current calendar week (Monday 00:00) and month, in the shop's timezone."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_now = now.astimezone(ZoneInfo(tz_name))
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = midnight - timedelta(days=local_now.weekday())
    month_start = midnight.replace(day=1)
    return week_start, month_start


def compute_referral_stats(affiliates: Iterable[dict], orders: Iterable[dict]) -> ReferralStats:
    """
    Global referral rollup computed from raw rows: affiliate counts, referred
    order count and sales, average order value and the best-selling affiliate.
    """
    affiliates = list(affiliates)
    orders = [o for o in orders if o.get("affiliate_id") is not None]

    total_referrals = len(orders)
    total_sales = sum(float(o.get("total") or 0) for o in orders)
    avg_order_value = total_sales / total_referrals if total_referrals > 0 else 0.0

    sales_by_affiliate: Dict[str, float] = defaultdict(float)
    for o in orders:
        sales_by_affiliate[o["affiliate_id"]] += float(o.get("total") or 0)

    top_affiliate_name = None
    top_affiliate_sales = 0.0
    if sales_by_affiliate:
        top_id, top_affiliate_sales = max(sales_by_affiliate.items(), key=lambda kv: kv[1])
        names = {a["id"]: a.get("name") for a in affiliates}
        top_affiliate_name = names.get(top_id)

    return ReferralStats(
        total_affiliates=len(affiliates),
        active_affiliates=sum(1 for a in affiliates if a.get("status") == "active"),
        total_referrals=total_referrals,
        total_sales=total_sales,
        avg_order_value=avg_order_value,
        top_affiliate_name=top_affiliate_name,
        top_affiliate_sales=top_affiliate_sales,
    )


def compute_per_affiliate_analytics(
    affiliates: Iterable[dict],
    orders: Iterable[dict],
    now: datetime,
    tz_name: str = settings.TIMEZONE,
) -> List[ReferralAnalytics]:
    """
    Groups referred orders by affiliate_id. Week and month boundaries are
    calendar-relative to `now`. Affiliates without orders are listed with zeros.
    Sorted by total sales, highest first.
    """
    week_start, month_start = _period_starts(now, tz_name)

    rollups: Dict[str, ReferralAnalytics] = {}
    for a in affiliates:
        rollups[a["id"]] = ReferralAnalytics(
            affiliate_id=a["id"],
            affiliate_name=a.get("name") or "",
            referral_code=a.get("referral_code") or "",
        )

    for o in orders:
        affiliate_id = o.get("affiliate_id")
        if affiliate_id is None:
            continue
        rollup = rollups.get(affiliate_id)
        if rollup is None:
            # The affiliate row is gone; fall back to what the order recorded
            rollup = ReferralAnalytics(
                affiliate_id=affiliate_id,
                affiliate_name=o.get("referred_by") or "",
                referral_code=o.get("referral_code") or "",
            )
            rollups[affiliate_id] = rollup

        rollup.total_referrals += 1
        rollup.total_sales += float(o.get("total") or 0)

        created_at = _parse_timestamp(o.get("created_at"))
        if created_at is None:
            continue
        if created_at >= week_start:
            rollup.referrals_this_week += 1
        if created_at >= month_start:
            rollup.referrals_this_month += 1
        if rollup.last_referral_date is None or created_at > rollup.last_referral_date:
            rollup.last_referral_date = created_at

    return sorted(rollups.values(), key=lambda r: r.total_sales, reverse=True)


async def _fetch_fallback_rows(store: SupabaseClient) -> tuple[List[dict], List[dict]]:
    affiliates = await crud_order.get_affiliate_statuses(store)
    orders = await crud_order.get_referred_order_totals(store)
    return affiliates, orders


async def compute_stats(store: SupabaseClient) -> ReferralStats:
    """
    Referral stats from the `get_referral_stats` database function, falling back
    to a client-side computation when the function fails or returns nothing.
    """
    try:
        row = await crud_order.get_referral_stats_rpc(store)
        if row:
            return ReferralStats.model_validate(row)
        logger.warning("get_referral_stats returned no rows, using fallback calculation.")
    except PersistenceError as e:
        logger.warning(f"RPC get_referral_stats failed, using fallback calculation: {e.message}")

    affiliates, orders = await _fetch_fallback_rows(store)
    return compute_referral_stats(affiliates, orders)


async def get_referral_analytics(store: SupabaseClient, now: Optional[datetime] = None) -> List[ReferralAnalytics]:
    """Per-affiliate analytics from the `referral_analytics` view, computed locally if the view fails."""
    try:
        return await crud_order.get_referral_analytics_view(store)
    except PersistenceError as e:
        logger.warning(f"referral_analytics view failed, using fallback calculation: {e.message}")

    affiliates, orders = await _fetch_fallback_rows(store)
    return compute_per_affiliate_analytics(affiliates, orders, now or datetime.now(timezone.utc))
