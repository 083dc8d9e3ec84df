# app/routers/auth.py
from fastapi import APIRouter

from app.schemas.auth import AdminLogin, Token
from app.services import auth as auth_service

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(login_data: AdminLogin):
    """
    Issues a bearer token for the admin dashboard.
    """
    return Token(access_token=auth_service.login_admin(login_data.password))
