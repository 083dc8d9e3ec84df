# app/services/auth.py

import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from jose import jwt

from app.core import locales
from app.core.config import settings
from app.dependencies import ADMIN_SUBJECT

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Creates a JWT."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def login_admin(password: str) -> str:
    """Checks the dashboard password and returns an admin token."""
    if not secrets.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode()):
        logger.warning("Rejected admin login with a wrong password.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=locales.ERROR_INVALID_CREDENTIALS)
    logger.info("Admin logged in.")
    return create_access_token({"sub": ADMIN_SUBJECT})
