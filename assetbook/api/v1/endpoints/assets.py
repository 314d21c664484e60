"""API endpoints for the asset register."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select, func, delete

from assetbook.models.asset import Asset, AssetStatus, DepreciationEntry
from assetbook.schemas.asset import (
    AssetCreate, AssetUpdate, AssetResponse, AssetUpdateResponse, AssetListResponse,
)
from assetbook.services.depreciation_service import DepreciationService
from assetbook.api.deps import DB, Today, get_asset_or_404


logger = logging.getLogger(__name__)

router = APIRouter()

# Editing any of these after ledger entries exist leaves the ledger stale
LEDGER_CRITICAL_FIELDS = ("value", "useful_life", "purchase_date")

# May be cleared by sending null
NULLABLE_FIELDS = ("category", "location")


@router.get("", response_model=AssetListResponse)
async def list_assets(
    db: DB,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=100),
    status_filter: Optional[AssetStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
):
    """List assets."""
    query = select(Asset)

    if status_filter:
        query = query.where(Asset.status == status_filter.value)
    if search:
        query = query.where(
            Asset.name.ilike(f"%{search}%") | Asset.asset_tag.ilike(f"%{search}%")
        )

    # Count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Paginate
    query = query.order_by(Asset.asset_tag).offset((page - 1) * size).limit(size)
    result = await db.execute(query)
    assets = result.scalars().all()

    pages = (total + size - 1) // size
    return AssetListResponse(
        items=[AssetResponse.model_validate(asset) for asset in assets],
        total=total,
        page=page,
        size=size,
        pages=pages,
    )


@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(
    asset_in: AssetCreate,
    db: DB,
    today: Today,
    auto_depreciate: bool = Query(False, description="Catch up pending periods right after creation"),
):
    """Create a new asset."""
    if not DepreciationService.validate_purchase_date(asset_in.purchase_date, today):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Purchase date cannot be in the future"
        )

    existing = await db.execute(select(Asset.id).where(Asset.asset_tag == asset_in.asset_tag))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Asset tag '{asset_in.asset_tag}' already exists"
        )

    asset = Asset(
        asset_tag=asset_in.asset_tag,
        name=asset_in.name,
        category=asset_in.category,
        location=asset_in.location,
        value=asset_in.value,
        purchase_date=asset_in.purchase_date,
        useful_life=asset_in.useful_life,
        status=asset_in.status.value,
    )

    db.add(asset)
    await db.commit()
    await db.refresh(asset)

    if auto_depreciate:
        result = await DepreciationService(db).process_asset_auto_depreciation(asset, today)
        logger.info(f"Asset {asset.asset_tag} created: {result['message']}")

    return AssetResponse.model_validate(asset)


@router.get("/{asset_id}", response_model=AssetResponse)
async def get_asset(asset_id: UUID, db: DB):
    """Get asset by ID."""
    asset = await get_asset_or_404(db, asset_id)
    return AssetResponse.model_validate(asset)


@router.put("/{asset_id}", response_model=AssetUpdateResponse)
async def update_asset(asset_id: UUID, asset_in: AssetUpdate, db: DB):
    """
    Update an asset.

    The ledger is never recomputed here. When value, useful life or purchase
    date change on an asset that already has entries, the response flags
    that a reset is recommended.
    """
    asset = await get_asset_or_404(db, asset_id)

    update_data = asset_in.model_dump(exclude_unset=True)
    if "status" in update_data and update_data["status"] is not None:
        update_data["status"] = update_data["status"].value

    changed_fields = []
    for field, value in update_data.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        if getattr(asset, field) != value:
            changed_fields.append(field)
        setattr(asset, field, value)

    critical_changes = [f for f in changed_fields if f in LEDGER_CRITICAL_FIELDS]
    ledger_reset_recommended = False
    if critical_changes:
        last_sequence = await DepreciationService(db).get_last_sequence(asset.id)
        if last_sequence > 0:
            ledger_reset_recommended = True
            logger.warning(
                f"Asset {asset.asset_tag}: {', '.join(critical_changes)} changed with "
                f"{last_sequence} depreciation entries on the ledger; reset recommended"
            )

    await db.commit()
    await db.refresh(asset)

    response = AssetUpdateResponse.model_validate(asset)
    response.ledger_reset_recommended = ledger_reset_recommended
    response.changed_fields = changed_fields
    return response


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(asset_id: UUID, db: DB):
    """Delete an asset together with its depreciation ledger."""
    asset = await get_asset_or_404(db, asset_id)
    await db.execute(delete(DepreciationEntry).where(DepreciationEntry.asset_id == asset.id))
    await db.delete(asset)
    await db.commit()
