# app/services/checkout.py

import logging
import uuid
from typing import List, Optional
from urllib.parse import quote

from fastapi import HTTPException, status
from redis.asyncio import Redis

from app.bot.services import notification as notification_service
from app.clients.supabase import SupabaseClient
from app.core import locales
from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.crud import order as crud_order
from app.schemas.affiliate import ReferralInfo
from app.schemas.cart import CartLine
from app.schemas.checkout import (
    CheckoutDetails, CheckoutDetailsUpdate, CheckoutResult, CheckoutState, CheckoutStateResponse
)
from app.schemas.order import Order, OrderCreate
from app.services import cart as cart_service
from app.services import catalog as catalog_service

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves unescaped besides letters, digits and "_.-~"
URI_COMPONENT_SAFE = "!*'()"


class CheckoutSession:
    """
    Checkout form state machine: details -> payment -> submitted.

    Moving to payment requires valid details; going back is always allowed and
    keeps everything that was entered. While a submission is in flight the
    session is busy and a second submission is refused.
    """

    def __init__(self, state: Optional[CheckoutState] = None):
        self.state = state or CheckoutState()

    @property
    def step(self) -> str:
        return self.state.step

    @property
    def details(self) -> CheckoutDetails:
        return self.state.details

    @property
    def is_busy(self) -> bool:
        return self.state.is_submitting

    def is_details_valid(self) -> bool:
        d = self.state.details
        return bool(
            d.customer_name.strip()
            and d.contact_number.strip()
            and (d.service_type != "delivery" or d.address.strip())
            and (d.service_type != "pickup" or d.pickup_time != "custom" or d.custom_time.strip())
            and (d.service_type != "dine-in" or d.party_size >= 1)
        )

    def update_details(self, update: CheckoutDetailsUpdate) -> None:
        if self.state.is_submitting or self.state.step == "submitted":
            return
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        self.state.details = self.state.details.model_copy(update=changes)

    def proceed_to_payment(self) -> bool:
        """details -> payment. Blocked, with no state change, while details are invalid."""
        if self.state.step != "details" or not self.is_details_valid():
            return False
        self.state.step = "payment"
        return True

    def back_to_details(self) -> bool:
        if self.state.step != "payment" or self.state.is_submitting:
            return False
        self.state.step = "details"
        return True

    def begin_submission(self) -> Optional[str]:
        """Marks the session busy and returns the attempt id, or None if it cannot submit now."""
        if self.state.step != "payment" or self.state.is_submitting or not self.is_details_valid():
            return None
        attempt_id = uuid.uuid4().hex
        self.state.is_submitting = True
        self.state.attempt_id = attempt_id
        return attempt_id

    def finish_submission(self, attempt_id: str, completed: bool) -> bool:
        """
        Clears the busy flag for `attempt_id`. Returns False, changing nothing,
        when the session was reset in the meantime and the result is stale.
        """
        if self.state.attempt_id != attempt_id:
            return False
        self.state.is_submitting = False
        self.state.attempt_id = None
        if completed:
            self.state.step = "submitted"
        return True

    def reset(self) -> None:
        self.state = CheckoutState()

    def to_response(self) -> CheckoutStateResponse:
        return CheckoutStateResponse(**self.state.model_dump(), is_details_valid=self.is_details_valid())


# --- Order summary ---

def format_amount(value: float) -> str:
    """380.0 -> '380', 12.5 -> '12.5'"""
    value = round(float(value), 2)
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def pickup_time_info(details: CheckoutDetails) -> str:
    if details.pickup_time == "custom":
        return details.custom_time
    return f"{details.pickup_time} minutes"


def format_cart_line(line: CartLine) -> str:
    text = f"• {line.item.name}"
    if line.selected_variation:
        text += f" ({line.selected_variation.name})"
    if line.selected_add_ons:
        add_ons = ", ".join(
            f"{a.name} x{a.quantity}" if a.quantity > 1 else a.name
            for a in line.selected_add_ons
        )
        text += f" + {add_ons}"
    text += f" x{line.quantity} - {settings.CURRENCY_SYMBOL}{format_amount(line.total_price * line.quantity)}"
    return text


def build_order_message(
    details: CheckoutDetails,
    lines: List[CartLine],
    total: float,
    referral: Optional[ReferralInfo],
    payment_method_name: str,
) -> str:
    """
    Human-readable order the operator receives in Messenger. Operators read this
    text by hand, so the section layout is kept stable.
    """
    shop = settings.SHOP_NAME
    currency = settings.CURRENCY_SYMBOL
    service = details.service_type

    delivery_line = ""
    if service == "delivery":
        delivery_line = f"🏠 Address: {details.address}"
        if details.landmark:
            delivery_line += f"\n🗺️ Landmark: {details.landmark}"
    pickup_line = f"⏰ Pickup Time: {pickup_time_info(details)}" if service == "pickup" else ""
    dine_in_line = ""
    if service == "dine-in":
        plural = "s" if details.party_size != 1 else ""
        dine_in_line = f"👥 Party Size: {details.party_size} person{plural}"

    message_lines = [
        f"🛒 {shop} ORDER",
        "",
        f"👤 Customer: {details.customer_name}",
        f"📞 Contact: {details.contact_number}",
        f"📍 Service: {service[:1].upper() + service[1:]}",
        delivery_line,
        pickup_line,
        dine_in_line,
        "",
        "",
        "📋 ORDER DETAILS:",
        "\n".join(format_cart_line(line) for line in lines),
        "",
        f"💰 TOTAL: {currency}{format_amount(total)}",
        "🛵 DELIVERY FEE:" if service == "delivery" else "",
        "",
        f"👥 Referred by: {referral.affiliate_name} ({referral.referral_code})" if referral else "",
        "",
        f"💳 Payment: {payment_method_name}",
        "📸 Payment Screenshot: Please attach your payment receipt screenshot",
        "",
        f"📝 Notes: {details.notes}" if details.notes else "",
        "",
        f"Please confirm this order to proceed. Thank you for choosing {shop}! 🍯",
    ]
    return "\n".join(message_lines).strip()


def build_messenger_url(message: str) -> str:
    return f"https://m.me/{settings.MESSENGER_PAGE_ID}?text={quote(message, safe=URI_COMPONENT_SAFE)}"


def build_order_record(
    details: CheckoutDetails,
    total: float,
    referral: Optional[ReferralInfo],
    payment_method_name: str,
) -> OrderCreate:
    service = details.service_type
    return OrderCreate(
        customer_name=details.customer_name,
        contact_number=details.contact_number,
        service_type=service,
        total=total,
        payment_method=payment_method_name,
        notes=details.notes or None,
        delivery_address=details.address if service == "delivery" else None,
        pickup_time=pickup_time_info(details) if service == "pickup" else None,
        party_size=details.party_size if service == "dine-in" else None,
        status="pending",
        referred_by=referral.affiliate_name if referral else None,
        referral_code=referral.referral_code if referral else None,
        affiliate_id=referral.affiliate_id if referral else None,
    )


# --- Session storage ---

def _checkout_key(session_id: str) -> str:
    return f"checkout:{session_id}"


def _lock_key(session_id: str) -> str:
    return f"checkout_lock:{session_id}"


async def load_checkout(redis: Redis, session_id: str) -> CheckoutSession:
    raw = await redis.get(_checkout_key(session_id))
    if not raw:
        return CheckoutSession()
    try:
        return CheckoutSession(CheckoutState.model_validate_json(raw))
    except Exception:
        logger.warning(f"Discarding unreadable checkout state for session {session_id}.", exc_info=True)
        return CheckoutSession()


async def save_checkout(redis: Redis, session_id: str, session: CheckoutSession) -> None:
    await redis.set(_checkout_key(session_id), session.state.model_dump_json(), ex=settings.SESSION_TTL_SECONDS)


async def reset_checkout(redis: Redis, session_id: str) -> CheckoutSession:
    await redis.delete(_checkout_key(session_id))
    return CheckoutSession()


async def _resolve_payment_method_name(store: SupabaseClient, method_id: str) -> str:
    try:
        methods = await catalog_service.get_payment_methods(store)
    except PersistenceError as e:
        logger.warning(f"Could not load payment methods, using id '{method_id}': {e.message}")
        return method_id
    method = next((m for m in methods if m.id == method_id), None)
    return method.name if method else method_id


async def _persist_order(store: SupabaseClient, record: OrderCreate, summary: str) -> tuple[Optional[Order], Optional[str]]:
    """
    Saves the order. A failure is reported to the operator and returned as an
    error message; it never stops the Messenger hand-off.
    """
    try:
        order = await crud_order.create_order(store, record)
    except PersistenceError as e:
        logger.error(f"Failed to save order for '{record.customer_name}' ({record.total}): {e.message}")
        await notification_service.send_order_save_failure_to_admin(e.message, summary)
        return None, locales.ERROR_SAVE_ORDER_FAILED.format(reason=e.message)

    logger.info(f"Order {order.id} saved (total {order.total}, affiliate {order.affiliate_id}).")
    await notification_service.send_new_order_to_admin(order, summary)
    return order, None


async def submit_order(
    store: SupabaseClient,
    redis: Redis,
    session_id: str,
    referral: Optional[ReferralInfo],
) -> CheckoutResult:
    """
    Places the order: builds the summary from the session cart, stores the order
    and returns the Messenger deep link carrying the summary.

    Only one submission per session runs at a time (busy flag plus a Redis
    lock). The busy flag is cleared on every exit path. If the checkout was reset
    while the order was being saved, the result is not applied to the session.
    """
    session = await load_checkout(redis, session_id)
    if session.is_busy:
        if await redis.get(_lock_key(session_id)) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=locales.ERROR_CHECKOUT_BUSY)
        # The lock expired but the busy flag was never cleared
        logger.warning(f"Clearing stale busy flag (attempt {session.state.attempt_id}) for session {session_id}.")
        session.finish_submission(session.state.attempt_id, completed=False)

    attempt_id = session.begin_submission()
    if attempt_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=locales.ERROR_CHECKOUT_NOT_AT_PAYMENT)

    lock_acquired = await redis.set(_lock_key(session_id), attempt_id, ex=settings.CHECKOUT_LOCK_SECONDS, nx=True)
    if not lock_acquired:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=locales.ERROR_CHECKOUT_BUSY)

    completed = False
    try:
        await save_checkout(redis, session_id, session)

        cart = await cart_service.load_cart(redis, session_id)
        if not cart.lines:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=locales.ERROR_CART_EMPTY)

        details = session.details
        # Line prices were frozen when items were added; catalog edits since then do not matter
        total = cart.total_price()
        payment_method_name = await _resolve_payment_method_name(store, details.payment_method)
        summary = build_order_message(details, cart.lines, total, referral, payment_method_name)
        record = build_order_record(details, total, referral, payment_method_name)

        order, persist_error = await _persist_order(store, record, summary)
        completed = True

        return CheckoutResult(
            order=order,
            total=total,
            message=summary,
            messenger_url=build_messenger_url(summary),
            referral=referral,
            persist_error=persist_error,
        )
    finally:
        current = await load_checkout(redis, session_id)
        if current.finish_submission(attempt_id, completed):
            await save_checkout(redis, session_id, current)
            if completed:
                await cart_service.clear_cart(redis, session_id)
        else:
            logger.info(f"Checkout for session {session_id} was reset during submission; result discarded.")

        if await redis.get(_lock_key(session_id)) == attempt_id:
            await redis.delete(_lock_key(session_id))
