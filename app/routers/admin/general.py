# app/routers/admin/general.py

import logging

from fastapi import APIRouter, Depends
from redis.asyncio import Redis

from app.core.redis import get_redis_client
from app.services import catalog as catalog_service

logger = logging.getLogger(__name__)

# No prefix: endpoints live directly under /admin
router = APIRouter()


@router.post("/cache/clear")
async def clear_menu_cache(redis: Redis = Depends(get_redis_client)):
    """
    [ADMIN] Drops the cached menu so edits made in the database show up
    immediately.
    """
    await catalog_service.invalidate_menu_cache(redis)
    logger.info("Menu cache clear was triggered by admin.")
    return {"status": "ok", "message": "Menu cache has been cleared."}
