# tests/test_checkout.py

from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import HTTPException

from app.core.exceptions import PersistenceUnavailableError
from app.schemas.affiliate import ReferralInfo
from app.schemas.cart import CartItemAdd, SelectedAddOn
from app.schemas.checkout import CheckoutDetails, CheckoutDetailsUpdate
from app.services import cart as cart_service
from app.services import checkout as checkout_service
from app.services.cart import Cart
from app.services.checkout import CheckoutSession

SID = "s1"
MARIA = ReferralInfo(referral_code="ABC123", affiliate_name="Maria Santos", affiliate_id="aff-maria")


def _session_at_payment(**details) -> CheckoutSession:
    session = CheckoutSession()
    session.update_details(CheckoutDetailsUpdate(customer_name="Ana Reyes", contact_number="09171234567", **details))
    assert session.proceed_to_payment()
    return session


@pytest.fixture
def alerts(mocker):
    """Operator alerts are replaced so tests never reach Telegram."""
    return {
        "new_order": mocker.patch(
            "app.bot.services.notification.send_new_order_to_admin", new_callable=AsyncMock
        ),
        "save_failure": mocker.patch(
            "app.bot.services.notification.send_order_save_failure_to_admin", new_callable=AsyncMock
        ),
    }


async def _fill_cart(store, redis) -> Cart:
    """The 150 + 20 + 10 + 10 cake, twice."""
    item = CartItemAdd(
        menu_item_id="item-cake",
        variation_id="var-large",
        add_ons=[SelectedAddOn(id="addon-cream"), SelectedAddOn(id="addon-berries")],
    )
    await cart_service.add_item_to_cart(store, redis, SID, item)
    return await cart_service.add_item_to_cart(store, redis, SID, item)


# --- State machine ---

def test_delivery_without_address_cannot_proceed():
    session = CheckoutSession()
    session.update_details(CheckoutDetailsUpdate(
        customer_name="Ana", contact_number="0917", service_type="delivery",
    ))
    assert session.is_details_valid() is False
    assert session.proceed_to_payment() is False
    assert session.step == "details"

    session.update_details(CheckoutDetailsUpdate(address="12 Mabini St"))
    assert session.proceed_to_payment() is True
    assert session.step == "payment"


@pytest.mark.parametrize("update", [
    CheckoutDetailsUpdate(contact_number="0917"),
    CheckoutDetailsUpdate(customer_name="   ", contact_number="0917"),
    CheckoutDetailsUpdate(customer_name="Ana", contact_number="0917", service_type="pickup", pickup_time="custom"),
    CheckoutDetailsUpdate(customer_name="Ana", contact_number="0917", party_size=0),
])
def test_incomplete_details_are_invalid(update):
    session = CheckoutSession()
    session.update_details(update)
    assert session.is_details_valid() is False


def test_back_keeps_entered_details():
    session = _session_at_payment(notes="No nuts")
    assert session.back_to_details() is True
    assert session.step == "details"
    assert session.details.notes == "No nuts"
    assert session.details.customer_name == "Ana Reyes"


def test_only_one_submission_at_a_time():
    session = _session_at_payment()
    attempt = session.begin_submission()
    assert attempt
    assert session.is_busy
    assert session.begin_submission() is None
    assert session.back_to_details() is False

    # Form edits are ignored while busy
    session.update_details(CheckoutDetailsUpdate(customer_name="Someone Else"))
    assert session.details.customer_name == "Ana Reyes"

    assert session.finish_submission(attempt, completed=True) is True
    assert session.step == "submitted"
    assert session.is_busy is False


def test_result_for_a_reset_session_is_stale():
    session = _session_at_payment()
    attempt = session.begin_submission()
    session.reset()

    assert session.finish_submission(attempt, completed=True) is False
    assert session.step == "details"
    assert session.is_busy is False


# --- Order summary ---

async def test_summary_lists_items_and_referral(seeded_store, fake_redis):
    cart = await _fill_cart(seeded_store, fake_redis)
    details = CheckoutDetails(
        customer_name="Ana Reyes", contact_number="0917", service_type="delivery",
        address="12 Mabini St", landmark="Near the church", notes="Ring twice",
    )

    message = checkout_service.build_order_message(details, cart.lines, cart.total_price(), MARIA, "GCash")

    assert message.startswith("🛒 Sweet Quest ORDER")
    assert "• Ube Cake (Large) + Berries, Whipped Cream x2 - ₱380" in message
    assert "💰 TOTAL: ₱380" in message
    assert "🏠 Address: 12 Mabini St\n🗺️ Landmark: Near the church" in message
    assert "🛵 DELIVERY FEE:" in message
    assert "👥 Referred by: Maria Santos (ABC123)" in message
    assert "💳 Payment: GCash" in message
    assert "📝 Notes: Ring twice" in message
    assert message.endswith("Thank you for choosing Sweet Quest! 🍯")


def test_summary_for_pickup_and_dine_in():
    pickup = CheckoutDetails(customer_name="A", contact_number="1", service_type="pickup",
                             pickup_time="custom", custom_time="3:30 PM")
    dine_in = CheckoutDetails(customer_name="A", contact_number="1", party_size=4)

    pickup_message = checkout_service.build_order_message(pickup, [], 0, None, "GCash")
    dine_in_message = checkout_service.build_order_message(dine_in, [], 0, None, "GCash")

    assert "⏰ Pickup Time: 3:30 PM" in pickup_message
    assert "Referred by" not in pickup_message
    assert "👥 Party Size: 4 persons" in dine_in_message
    assert "DELIVERY FEE" not in dine_in_message


def test_messenger_url_carries_the_encoded_message():
    url = checkout_service.build_messenger_url("Hello (world)!\nTotal: ₱380 & more")
    assert url.startswith("https://m.me/61578058454940?text=")
    assert "%0A" in url and "%20" in url and "(world)!" in url
    assert parse_qs(urlparse(url).query)["text"] == ["Hello (world)!\nTotal: ₱380 & more"]


def test_order_record_keeps_only_fields_of_the_service_type():
    details = CheckoutDetails(customer_name="A", contact_number="1", service_type="pickup",
                              address="ignored", pickup_time="15-20", party_size=3)
    record = checkout_service.build_order_record(details, 120, MARIA, "GCash")
    assert record.pickup_time == "15-20 minutes"
    assert record.delivery_address is None
    assert record.party_size is None
    assert (record.referred_by, record.referral_code, record.affiliate_id) == ("Maria Santos", "ABC123", "aff-maria")
    assert record.status == "pending"


# --- Submission ---

async def test_submit_saves_order_and_clears_cart(seeded_store, fake_redis, alerts):
    await _fill_cart(seeded_store, fake_redis)
    await checkout_service.save_checkout(fake_redis, SID, _session_at_payment())

    result = await checkout_service.submit_order(seeded_store, fake_redis, SID, MARIA)

    assert result.total == 380
    assert result.persist_error is None
    assert result.order.affiliate_id == "aff-maria"
    assert result.messenger_url.startswith("https://m.me/")
    [stored] = seeded_store.tables["orders"]
    assert stored["total"] == 380
    assert stored["payment_method"] == "GCash"
    alerts["new_order"].assert_awaited_once()

    assert "cart:s1" not in fake_redis.data
    session = await checkout_service.load_checkout(fake_redis, SID)
    assert session.step == "submitted"
    assert session.is_busy is False
    assert "checkout_lock:s1" not in fake_redis.data


async def test_total_ignores_catalog_edits_after_adding(seeded_store, fake_redis, alerts):
    cart = await _fill_cart(seeded_store, fake_redis)
    for row in seeded_store.tables["menu_items"]:
        if row["id"] == "item-cake":
            row["base_price"] = 500
    await checkout_service.save_checkout(fake_redis, SID, _session_at_payment())

    result = await checkout_service.submit_order(seeded_store, fake_redis, SID, None)

    assert result.total == cart.total_price() == 380
    assert "💰 TOTAL: ₱380" in result.message


async def test_failed_save_still_hands_off_to_messenger(seeded_store, fake_redis, alerts):
    await _fill_cart(seeded_store, fake_redis)
    await checkout_service.save_checkout(fake_redis, SID, _session_at_payment())
    seeded_store.failures["orders"] = PersistenceUnavailableError("connection reset")

    result = await checkout_service.submit_order(seeded_store, fake_redis, SID, MARIA)

    assert result.order is None
    assert result.persist_error == "Failed to save order to database: connection reset"
    assert result.messenger_url.startswith("https://m.me/61578058454940?text=")
    alerts["save_failure"].assert_awaited_once()
    assert alerts["save_failure"].await_args.args[0] == "connection reset"
    session = await checkout_service.load_checkout(fake_redis, SID)
    assert session.is_busy is False


async def test_submit_while_busy_is_rejected(seeded_store, fake_redis, alerts):
    await _fill_cart(seeded_store, fake_redis)
    session = _session_at_payment()
    attempt = session.begin_submission()
    await checkout_service.save_checkout(fake_redis, SID, session)
    fake_redis.data["checkout_lock:s1"] = attempt

    with pytest.raises(HTTPException) as exc_info:
        await checkout_service.submit_order(seeded_store, fake_redis, SID, None)

    assert exc_info.value.status_code == 409
    assert "orders" not in seeded_store.tables


async def test_busy_flag_without_lock_is_cleared(seeded_store, fake_redis, alerts):
    # A worker died mid-submission and its lock has since expired
    await _fill_cart(seeded_store, fake_redis)
    session = _session_at_payment()
    session.begin_submission()
    await checkout_service.save_checkout(fake_redis, SID, session)

    result = await checkout_service.submit_order(seeded_store, fake_redis, SID, None)

    assert result.order is not None
    assert len(seeded_store.tables["orders"]) == 1
    session = await checkout_service.load_checkout(fake_redis, SID)
    assert session.step == "submitted"
    assert session.is_busy is False
    assert "checkout_lock:s1" not in fake_redis.data


async def test_submit_while_lock_is_held_is_rejected(seeded_store, fake_redis, alerts):
    await _fill_cart(seeded_store, fake_redis)
    await checkout_service.save_checkout(fake_redis, SID, _session_at_payment())
    fake_redis.data["checkout_lock:s1"] = "another-attempt"

    with pytest.raises(HTTPException) as exc_info:
        await checkout_service.submit_order(seeded_store, fake_redis, SID, None)

    assert exc_info.value.status_code == 409
    assert fake_redis.data["checkout_lock:s1"] == "another-attempt"


async def test_submit_before_payment_step_is_rejected(seeded_store, fake_redis, alerts):
    await _fill_cart(seeded_store, fake_redis)
    with pytest.raises(HTTPException) as exc_info:
        await checkout_service.submit_order(seeded_store, fake_redis, SID, None)
    assert exc_info.value.status_code == 400


async def test_submit_with_empty_cart_releases_session(seeded_store, fake_redis, alerts):
    await checkout_service.save_checkout(fake_redis, SID, _session_at_payment())

    with pytest.raises(HTTPException) as exc_info:
        await checkout_service.submit_order(seeded_store, fake_redis, SID, None)

    assert exc_info.value.status_code == 400
    session = await checkout_service.load_checkout(fake_redis, SID)
    assert session.is_busy is False
    assert session.step == "payment"
    assert "checkout_lock:s1" not in fake_redis.data


async def test_reset_during_submission_discards_result(seeded_store, fake_redis, alerts, mocker):
    await _fill_cart(seeded_store, fake_redis)
    await checkout_service.save_checkout(fake_redis, SID, _session_at_payment())
    real_create_order = checkout_service.crud_order.create_order

    async def create_order_then_reset(store, record):
        # The customer starts over while the order is being saved
        await checkout_service.reset_checkout(fake_redis, SID)
        return await real_create_order(store, record)

    mocker.patch("app.crud.order.create_order", side_effect=create_order_then_reset)

    result = await checkout_service.submit_order(seeded_store, fake_redis, SID, None)

    assert result.order is not None
    assert "checkout:s1" not in fake_redis.data
    # The cart belongs to the new checkout now and is left alone
    assert "cart:s1" in fake_redis.data
