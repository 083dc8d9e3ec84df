# app/routers/admin/__init__.py

from fastapi import APIRouter, Depends
from app.dependencies import get_admin_user

from . import (
    general,
    affiliates,
    orders,
    reports,
)

# Every endpoint included here requires an admin token
router = APIRouter(
    tags=["Admin"],
    dependencies=[Depends(get_admin_user)]
)

# /admin/cache/clear
router.include_router(general.router)

# /admin/affiliates, /admin/affiliates/{id}, /admin/affiliates/generate-code
router.include_router(affiliates.router, prefix="/affiliates")

# /admin/orders, /admin/orders/{id}/status
router.include_router(orders.router, prefix="/orders")

# /admin/referrals/stats, /admin/referrals/analytics
router.include_router(reports.router, prefix="/referrals")
