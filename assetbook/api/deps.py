from datetime import date, datetime
from typing import Annotated, Optional
from uuid import UUID
from zoneinfo import ZoneInfo
import logging

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from assetbook.config import settings
from assetbook.database import get_db
from assetbook.models.asset import Asset


logger = logging.getLogger(__name__)


def business_now() -> datetime:
    """Current time in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE))


async def get_today(
    as_of: Optional[date] = Query(None, description="Evaluate as of this date instead of today"),
) -> date:
    """
    Dependency resolving the date depreciation is evaluated against.

    The ledger engine never reads the clock itself; handlers take "today"
    from here so it can be pinned with ?as_of=YYYY-MM-DD.
    """
    if as_of is not None:
        return as_of
    return business_now().date()


async def get_asset_or_404(db: AsyncSession, asset_id: UUID) -> Asset:
    asset = await db.get(Asset, asset_id)
    if not asset:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Asset not found"
        )
    return asset


# Type aliases for cleaner endpoint signatures
DB = Annotated[AsyncSession, Depends(get_db)]
Today = Annotated[date, Depends(get_today)]
