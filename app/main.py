# app/main.py

import asyncio
import html
import traceback
import logging
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

# Configuration and core
from app.core.config import settings as config
from app.core.exceptions import (
    ConflictError, NotFoundError, PersistenceError, PersistenceUnavailableError
)
from app.core.logging_config import setup_logging
from app.clients.supabase import supabase_client

# FastAPI routers
from app.routers import auth, catalog, cart, checkout, referral, admin as admin_router

# Operator alerts
from app.bot.core import bot
from app.bot.services import notification as bot_notification_service

# --- Init ---
logger = logging.getLogger(__name__)


# --- Persistence error handlers ---
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


async def unavailable_handler(request: Request, exc: PersistenceUnavailableError):
    logger.error(f"Database unavailable for {request.method} {request.url}: {exc.message}")
    return JSONResponse(status_code=503, content={"detail": "The database is temporarily unavailable."})


async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"Database rejected request {request.method} {request.url}: {exc.message} (code {exc.code})")
    return JSONResponse(status_code=502, content={"detail": exc.message})


# --- Critical error handler ---
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Global handler for every unhandled exception.
    Logs the error and alerts the operator chat.
    """
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=True)

    error_details = "".join(traceback.format_exception(exc))
    client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"

    error_message = (
        f"🚨 <b>Critical API error!</b>\n\n"
        f"<b>URL:</b> <code>{html.escape(f'{request.method} {request.url}')}</code>\n"
        f"<b>Client:</b> <code>{html.escape(client)}</code>\n\n"
        f"<b>Traceback:</b>\n"
    )

    asyncio.create_task(
        bot_notification_service.send_error_to_admin(error_message, error_details)
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error. The administrator has been notified."},
    )


# --- Lifespan manager (startup and shutdown) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")
    if bot is None:
        logger.info("TELEGRAM_BOT_TOKEN is not set; operator alerts are disabled.")

    yield

    logger.info("Application shutting down...")
    await supabase_client.close()
    if bot is not None:
        await bot.session.close()
        logger.info("Telegram bot session closed.")


# --- FastAPI application ---
app = FastAPI(
    title="Sweet Quest Storefront Service",
    description="Backend for the Sweet Quest storefront and admin dashboard",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Exception handlers ---
app.add_exception_handler(NotFoundError, not_found_handler)
app.add_exception_handler(ConflictError, conflict_handler)
app.add_exception_handler(PersistenceUnavailableError, unavailable_handler)
app.add_exception_handler(PersistenceError, persistence_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# --- Routers ---
api_router = APIRouter(prefix="/api/v1")

# Storefront endpoints (session scoped, no login)
api_router.include_router(catalog.router, tags=["Menu"])
api_router.include_router(cart.router, tags=["Cart"])
api_router.include_router(referral.router, tags=["Referral"])
api_router.include_router(checkout.router, tags=["Checkout"])

# Admin endpoints
api_router.include_router(auth.router, prefix="/admin", tags=["Authentication"])
api_router.include_router(admin_router.router, prefix="/admin")

app.include_router(api_router)


@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}
