# app/services/cart.py

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
from fastapi import HTTPException, status
from redis.asyncio import Redis

from app.clients.supabase import SupabaseClient
from app.core import locales
from app.core.config import settings
from app.schemas.cart import CartItemAdd, CartLine, CartResponse
from app.schemas.menu import AddOn, MenuItem, Variation
from app.services import catalog as catalog_service
from app.services.catalog import get_effective_price

logger = logging.getLogger(__name__)

LineIdentity = Tuple[str, Optional[str], Tuple[Tuple[str, int], ...]]


def normalize_add_ons(add_ons: Iterable[AddOn] | None) -> List[AddOn]:
    """
    Canonical, order-independent list of add-ons: duplicates are merged by
    summing their quantities and the result is sorted by id.
    """
    merged: dict[str, AddOn] = {}
    for add_on in add_ons or ():
        if add_on.id in merged:
            existing = merged[add_on.id]
            merged[add_on.id] = existing.model_copy(update={"quantity": existing.quantity + add_on.quantity})
        else:
            merged[add_on.id] = add_on.model_copy()
    return [merged[key] for key in sorted(merged)]


def line_identity(item_id: str, variation: Optional[Variation], add_ons: Iterable[AddOn]) -> LineIdentity:
    return (
        item_id,
        variation.id if variation else None,
        tuple((a.id, a.quantity) for a in normalize_add_ons(add_ons)),
    )


def compute_unit_price(
    item: MenuItem,
    variation: Optional[Variation],
    add_ons: Iterable[AddOn],
    now: datetime,
) -> float:
    """effective price + variation price + sum(add-on price x add-on quantity)"""
    price = get_effective_price(item, now)
    if variation:
        price += variation.price
    price += sum(a.price * a.quantity for a in add_ons)
    return price


class Cart:
    """
    Session cart. Lines are keyed by (item, variation, add-ons); adding an
    identical combination increments the existing line. The unit price of a line
    is frozen when the line is created.
    """

    def __init__(self, lines: Optional[List[CartLine]] = None):
        self.lines: List[CartLine] = list(lines or [])

    def _find(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.line_id == line_id), None)

    def add(
        self,
        item: MenuItem,
        variation: Optional[Variation] = None,
        add_ons: Optional[Iterable[AddOn]] = None,
        now: Optional[datetime] = None,
    ) -> CartLine:
        selected_add_ons = normalize_add_ons(add_ons)
        identity = line_identity(item.id, variation, selected_add_ons)

        for line in self.lines:
            if line_identity(line.item.id, line.selected_variation, line.selected_add_ons) == identity:
                line.quantity += 1
                return line

        now = now or datetime.now(timezone.utc)
        line = CartLine(
            line_id=uuid.uuid4().hex,
            item=item.model_copy(deep=True),
            quantity=1,
            selected_variation=variation,
            selected_add_ons=selected_add_ons,
            total_price=compute_unit_price(item, variation, selected_add_ons, now),
        )
        self.lines.append(line)
        return line

    def set_quantity(self, line_id: str, quantity: int) -> bool:
        """Sets the quantity of a line; 0 or less removes it. Returns False for an unknown line."""
        line = self._find(line_id)
        if line is None:
            return False
        if quantity <= 0:
            self.lines.remove(line)
        else:
            line.quantity = quantity
        return True

    def remove(self, line_id: str) -> bool:
        line = self._find(line_id)
        if line is None:
            return False
        self.lines.remove(line)
        return True

    def clear(self) -> None:
        self.lines = []

    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    def total_price(self) -> float:
        total = sum((line.total_price * line.quantity for line in self.lines), 0.0)
        return max(round(total, 2), 0.0)

    def to_response(self) -> CartResponse:
        return CartResponse(
            items=self.lines,
            total_items=self.total_items(),
            total_price=self.total_price(),
        )


# --- Session storage ---

def _cart_key(session_id: str) -> str:
    return f"cart:{session_id}"


async def load_cart(redis: Redis, session_id: str) -> Cart:
    raw = await redis.get(_cart_key(session_id))
    if not raw:
        return Cart()
    try:
        return Cart([CartLine.model_validate(line) for line in json.loads(raw)])
    except Exception:
        logger.warning(f"Discarding unreadable cart for session {session_id}.", exc_info=True)
        return Cart()


async def save_cart(redis: Redis, session_id: str, cart: Cart) -> None:
    if not cart.lines:
        await redis.delete(_cart_key(session_id))
        return
    payload = json.dumps([line.model_dump(mode="json", exclude={"subtotal"}) for line in cart.lines])
    await redis.set(_cart_key(session_id), payload, ex=settings.SESSION_TTL_SECONDS)


async def clear_cart(redis: Redis, session_id: str) -> None:
    await redis.delete(_cart_key(session_id))


def resolve_selection(item: MenuItem, item_data: CartItemAdd) -> Tuple[Optional[Variation], List[AddOn]]:
    """Maps requested option ids onto the item's own variations and add-ons."""
    variation = None
    if item_data.variation_id:
        variation = next((v for v in item.variations if v.id == item_data.variation_id), None)
        if variation is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=locales.ERROR_UNKNOWN_VARIATION.format(name=item.name),
            )

    offered = {a.id: a for a in item.add_ons}
    add_ons = []
    for selected in item_data.add_ons:
        if selected.id not in offered:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=locales.ERROR_UNKNOWN_ADD_ON.format(name=item.name),
            )
        add_ons.append(offered[selected.id].model_copy(update={"quantity": selected.quantity}))
    return variation, add_ons


async def add_item_to_cart(store: SupabaseClient, redis: Redis, session_id: str, item_data: CartItemAdd) -> Cart:
    """Adds the requested combination to the session cart, pricing it from the live catalog."""
    item = await catalog_service.get_menu_item(store, item_data.menu_item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=locales.ERROR_MENU_ITEM_NOT_FOUND)
    if not item.available:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=locales.ERROR_MENU_ITEM_UNAVAILABLE.format(name=item.name),
        )

    variation, add_ons = resolve_selection(item, item_data)
    cart = await load_cart(redis, session_id)
    line = cart.add(item, variation, add_ons)
    await save_cart(redis, session_id, cart)
    logger.info(f"Session {session_id}: '{item.name}' in cart, line {line.line_id} quantity {line.quantity}.")
    return cart
