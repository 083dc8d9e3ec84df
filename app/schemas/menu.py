# app/schemas/menu.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class Variation(BaseModel):
    id: str
    name: str
    price: float = 0.0


class AddOn(BaseModel):
    id: str
    name: str
    price: float = 0.0
    category: str = ""
    quantity: int = Field(1, ge=1)


class MenuItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    base_price: float
    category: str
    image: Optional[str] = None
    popular: bool = False
    available: bool = True
    variations: List[Variation] = []
    add_ons: List[AddOn] = []

    # Time-bounded discount
    discount_price: Optional[float] = None
    discount_start_date: Optional[datetime] = None
    discount_end_date: Optional[datetime] = None
    discount_active: bool = False


class MenuItemResponse(MenuItem):
    """Menu item as served to the storefront, with the price computed at read time."""
    effective_price: float
    is_on_discount: bool


class PaymentMethod(BaseModel):
    id: str
    name: str
    account_number: str = ""
    account_name: str = ""
    qr_code_url: Optional[str] = None
    active: bool = True
    sort_order: int = 0
