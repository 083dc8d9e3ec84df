# app/schemas/order.py
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

ServiceType = Literal["dine-in", "pickup", "delivery"]
OrderStatus = Literal["pending", "confirmed", "preparing", "ready", "delivered", "cancelled"]


class OrderCreate(BaseModel):
    customer_name: str
    contact_number: str
    service_type: ServiceType
    total: float = Field(..., ge=0)
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    status: OrderStatus = "pending"

    # Referral attribution
    referred_by: Optional[str] = None
    referral_code: Optional[str] = None
    affiliate_id: Optional[str] = None

    # Service-specific fields
    delivery_address: Optional[str] = None
    pickup_time: Optional[str] = None
    party_size: Optional[int] = None
    notes: Optional[str] = None


class Order(OrderCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class OrderAffiliate(BaseModel):
    name: str
    referral_code: str


class OrderWithAffiliate(Order):
    # Embedded relation, filled by the `affiliates!affiliate_id(...)` select
    affiliates: Optional[OrderAffiliate] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class ReferralAnalytics(BaseModel):
    affiliate_id: str
    affiliate_name: str
    referral_code: str
    total_referrals: int = 0
    total_sales: float = 0.0
    last_referral_date: Optional[datetime] = None
    referrals_this_week: int = 0
    referrals_this_month: int = 0


class ReferralStats(BaseModel):
    total_affiliates: int = 0
    active_affiliates: int = 0
    total_referrals: int = 0
    total_sales: float = 0.0
    avg_order_value: float = 0.0
    top_affiliate_name: Optional[str] = None
    top_affiliate_sales: float = 0.0


