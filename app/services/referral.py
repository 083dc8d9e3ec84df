# app/services/referral.py
import logging
import random
import re
from typing import Optional
from redis.asyncio import Redis

from app.clients.supabase import SupabaseClient
from app.core.config import settings
from app.core.exceptions import ConflictError, PersistenceError
from app.crud import affiliate as crud_affiliate
from app.schemas.affiliate import Affiliate, AffiliateCreate, ReferralInfo

logger = logging.getLogger(__name__)

# How many generated codes to try before giving up on a name
MAX_CODE_ATTEMPTS = 5


class ReferralSessionStore:
    """
    Session-scoped cache of the referral code a visitor arrived with.
    Survives page reloads for the lifetime of the session key.
    """

    def __init__(self, redis: Redis, ttl_seconds: int = settings.SESSION_TTL_SECONDS):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(session_id: str) -> str:
        return f"referral:{session_id}"

    async def get(self, session_id: str) -> Optional[str]:
        return await self.redis.get(self._key(session_id))

    async def set(self, session_id: str, referral_code: str) -> None:
        await self.redis.set(self._key(session_id), referral_code, ex=self.ttl_seconds)

    async def clear(self, session_id: str) -> None:
        await self.redis.delete(self._key(session_id))


def generate_referral_code(name: str) -> str:
    """Lowercased name without whitespace plus a number in [0, 1000). Not guaranteed unique."""
    base = re.sub(r"\s+", "", name.lower())
    return f"{base}{random.randrange(1000)}"


async def lookup_referral(store: SupabaseClient, referral_code: str) -> Optional[ReferralInfo]:
    """
    Resolves a code to the active affiliate behind it. Lookup failures are
    logged and treated as "no referral" so the customer never sees them.
    """
    try:
        affiliate = await crud_affiliate.get_active_affiliate_by_code(store, referral_code)
    except PersistenceError as e:
        logger.warning(f"Could not resolve referral code '{referral_code}': {e.message}")
        return None
    if affiliate is None:
        logger.info(f"Referral code '{referral_code}' does not match an active affiliate.")
        return None
    return ReferralInfo(
        referral_code=referral_code,
        affiliate_name=affiliate.name,
        affiliate_id=affiliate.id,
    )


async def resolve_referral(
    store: SupabaseClient,
    sessions: ReferralSessionStore,
    session_id: str,
    ref: Optional[str] = None,
) -> Optional[ReferralInfo]:
    """
    A `ref` from the URL is cached for the session and resolved; without one,
    the code cached by an earlier visit is resolved instead.
    """
    ref = ref.strip() if ref else None
    if ref:
        await sessions.set(session_id, ref)
        return await lookup_referral(store, ref)

    cached_code = await sessions.get(session_id)
    if not cached_code:
        return None
    return await lookup_referral(store, cached_code)


async def register_affiliate(store: SupabaseClient, affiliate_in: AffiliateCreate) -> Affiliate:
    """
    Creates an affiliate. An explicit code that is already taken raises
    ConflictError; a generated code is regenerated on conflict.
    """
    data = affiliate_in.model_dump(exclude_none=True)
    if affiliate_in.referral_code:
        return await crud_affiliate.create_affiliate(store, data)

    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        data["referral_code"] = generate_referral_code(affiliate_in.name)
        try:
            affiliate = await crud_affiliate.create_affiliate(store, data)
            logger.info(f"Created affiliate '{affiliate.name}' with generated code '{affiliate.referral_code}'.")
            return affiliate
        except ConflictError:
            logger.info(f"Generated code '{data['referral_code']}' is taken (attempt {attempt}/{MAX_CODE_ATTEMPTS}).")

    raise ConflictError(f"Could not generate a free referral code for '{affiliate_in.name}'")


def build_referral_link(referral_code: str) -> str:
    return f"{settings.STOREFRONT_URL.rstrip('/')}/?ref={referral_code}"
