# app/schemas/cart.py
from pydantic import BaseModel, Field, computed_field
from typing import List, Optional

from .menu import AddOn, MenuItem, Variation


class SelectedAddOn(BaseModel):
    id: str
    quantity: int = Field(1, ge=1)


# Request to add an item (with its chosen options) to the cart
class CartItemAdd(BaseModel):
    menu_item_id: str
    variation_id: Optional[str] = None
    add_ons: List[SelectedAddOn] = []


class CartItemQuantityUpdate(BaseModel):
    # 0 or less removes the line
    quantity: int


# One cart line. `total_price` is the unit price frozen when the line was added.
class CartLine(BaseModel):
    line_id: str
    item: MenuItem
    quantity: int = Field(1, ge=1)
    selected_variation: Optional[Variation] = None
    selected_add_ons: List[AddOn] = []
    total_price: float

    @computed_field
    @property
    def subtotal(self) -> float:
        return self.total_price * self.quantity


class CartResponse(BaseModel):
    items: List[CartLine]
    total_items: int
    total_price: float
