# app/routers/checkout.py

import logging
from fastapi import APIRouter, Depends
from redis.asyncio import Redis

from app.clients.supabase import SupabaseClient, get_store
from app.core.redis import get_redis_client
from app.dependencies import get_referral_sessions, get_session_id
from app.schemas.checkout import CheckoutDetailsUpdate, CheckoutResult, CheckoutStateResponse
from app.services import checkout as checkout_service
from app.services import referral as referral_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/checkout", response_model=CheckoutStateResponse)
async def get_checkout(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    session = await checkout_service.load_checkout(redis, session_id)
    return session.to_response()


@router.put("/checkout/details", response_model=CheckoutStateResponse)
async def update_checkout_details(
    update: CheckoutDetailsUpdate,
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    """Stores form input. Ignored while an order is being placed."""
    session = await checkout_service.load_checkout(redis, session_id)
    session.update_details(update)
    await checkout_service.save_checkout(redis, session_id, session)
    return session.to_response()


@router.post("/checkout/proceed", response_model=CheckoutStateResponse)
async def proceed_to_payment(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    """
    Moves to the payment step. While the details are invalid the state does not
    change; the response shows why through `is_details_valid`.
    """
    session = await checkout_service.load_checkout(redis, session_id)
    if session.proceed_to_payment():
        await checkout_service.save_checkout(redis, session_id, session)
    return session.to_response()


@router.post("/checkout/back", response_model=CheckoutStateResponse)
async def back_to_details(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    session = await checkout_service.load_checkout(redis, session_id)
    if session.back_to_details():
        await checkout_service.save_checkout(redis, session_id, session)
    return session.to_response()


@router.post("/checkout/submit", response_model=CheckoutResult)
async def submit_checkout(
    session_id: str = Depends(get_session_id),
    store: SupabaseClient = Depends(get_store),
    redis: Redis = Depends(get_redis_client),
    sessions: referral_service.ReferralSessionStore = Depends(get_referral_sessions),
):
    """
    Places the order and returns the Messenger link carrying the order summary.
    If the order could not be saved, `persist_error` says so and the link is
    still returned.
    """
    referral = await referral_service.resolve_referral(store, sessions, session_id)
    return await checkout_service.submit_order(store, redis, session_id, referral)


@router.delete("/checkout", response_model=CheckoutStateResponse)
async def reset_checkout(
    session_id: str = Depends(get_session_id),
    redis: Redis = Depends(get_redis_client),
):
    """Starts over. A submission still in flight will not touch the new state."""
    session = await checkout_service.reset_checkout(redis, session_id)
    return session.to_response()
