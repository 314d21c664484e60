from fastapi import APIRouter

from assetbook.api.v1.endpoints import (
    # Asset register
    assets,
    # Depreciation ledger
    depreciation,
    depreciation_schedule,
)


api_router = APIRouter(prefix="/api/v1")

# ==================== Assets ====================
api_router.include_router(
    assets.router,
    prefix="/assets",
    tags=["Assets"]
)

# ==================== Depreciation ====================
api_router.include_router(
    depreciation.router,
    tags=["Depreciation"]
)

# ==================== Depreciation Schedule ====================
api_router.include_router(
    depreciation_schedule.router,
    prefix="/depreciation-schedule",
    tags=["Depreciation Schedule"]
)
