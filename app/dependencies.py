# app/dependencies.py

import logging

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from redis.asyncio import Redis

from app.core import locales
from app.core.config import settings
from app.core.redis import get_redis_client
from app.services.referral import ReferralSessionStore

logger = logging.getLogger(__name__)

strict_bearer_scheme = HTTPBearer(auto_error=True)

ADMIN_SUBJECT = "admin"


# --- Storefront session ---

def get_session_id(x_session_id: str | None = Header(default=None, max_length=128)) -> str:
    """
    The storefront generates an opaque session id and sends it with every
    request. Cart, checkout and referral state are keyed by it.
    """
    if not x_session_id or not x_session_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=locales.ERROR_SESSION_ID_MISSING)
    return x_session_id.strip()


def get_referral_sessions(redis: Redis = Depends(get_redis_client)) -> ReferralSessionStore:
    return ReferralSessionStore(redis)


# --- Admin authorization ---

def get_admin_user(credentials: HTTPAuthorizationCredentials = Depends(strict_bearer_scheme)) -> str:
    """
    Protects the admin endpoints. Requires a valid token issued by /admin/login.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        raise credentials_exception

    subject = payload.get("sub")
    if subject != ADMIN_SUBJECT:
        logger.warning(f"Token subject '{subject}' is not an admin.")
        raise credentials_exception
    return subject
