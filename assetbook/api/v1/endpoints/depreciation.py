"""API endpoints for the depreciation ledger."""
import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from assetbook.models.asset import Asset
from assetbook.schemas.depreciation import (
    DepreciationEntryResponse,
    DepreciationFigures,
    DepreciationSummaryResponse,
    DepreciationStatusResponse,
    DepreciationPreviewResponse,
    DepreciationScheduleResponse,
    ScheduleRowResponse,
    GenerateMultipleRequest,
    GenerateUntilValueRequest,
    GenerationResultResponse,
    ResetResponse,
    SystemRunResponse,
    SystemSummaryResponse,
)
from assetbook.services.depreciation_service import (
    BulkResult,
    DepreciationError,
    DepreciationFailure,
    DepreciationService,
)
from assetbook.config import settings
from assetbook.api.deps import DB, Today, get_asset_or_404


logger = logging.getLogger(__name__)

router = APIRouter()


FAILURE_MESSAGES = {
    DepreciationFailure.ASSET_NOT_ELIGIBLE: "Asset status does not allow depreciation",
    DepreciationFailure.USEFUL_LIFE_EXHAUSTED: "Useful life already fully depreciated",
    DepreciationFailure.FULLY_DEPRECIATED: "Book value is already zero",
    DepreciationFailure.DUPLICATE_PERIOD: "Next period was recorded by another request",
    DepreciationFailure.INVALID_TARGET: "Target value must be below the current book value",
    DepreciationFailure.INVALID_CONFIGURATION: "Asset value or useful life is invalid",
}


def _error(status_code: int, reason: DepreciationFailure, message: str = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"code": reason.value, "message": message or FAILURE_MESSAGES[reason]},
    )


def _rejected(e: DepreciationError) -> HTTPException:
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, e.reason, e.message)


async def _result_response(
    service: DepreciationService,
    asset: Asset,
    today: date,
    result: BulkResult,
) -> GenerationResultResponse:
    """Shape a generation result, turning an ineligible asset into 409."""
    if result.processed == 0 and result.stopped_reason == DepreciationFailure.ASSET_NOT_ELIGIBLE:
        raise _error(
            status.HTTP_409_CONFLICT,
            DepreciationFailure.ASSET_NOT_ELIGIBLE,
            f"Asset {asset.asset_tag} has status '{asset.status}' and cannot be depreciated",
        )

    if result.processed > 0:
        message = f"Generated {result.processed} depreciation period(s)"
        if result.stopped_reason:
            message += f"; stopped: {FAILURE_MESSAGES[result.stopped_reason]}"
    elif result.stopped_reason:
        message = f"No depreciation generated: {FAILURE_MESSAGES[result.stopped_reason]}"
    else:
        message = "No pending depreciation"

    summary = await service.get_summary(asset, today, include_history=False)
    return GenerationResultResponse(
        asset_id=asset.id,
        processed=result.processed,
        requested=result.requested,
        stopped_reason=result.stopped_reason,
        message=message,
        summary=DepreciationFigures(**summary),
    )


# ==================== Projections ====================

@router.get("/assets/{asset_id}/depreciation", response_model=DepreciationSummaryResponse)
async def get_depreciation_summary(asset_id: UUID, db: DB, today: Today):
    """Depreciation summary with ledger history."""
    asset = await get_asset_or_404(db, asset_id)
    summary = await DepreciationService(db).get_summary(asset, today)
    summary["history"] = [DepreciationEntryResponse.model_validate(e) for e in summary["history"]]
    return DepreciationSummaryResponse(**summary)


@router.get("/assets/{asset_id}/depreciation-status", response_model=DepreciationStatusResponse)
async def get_depreciation_status(asset_id: UUID, db: DB, today: Today):
    """Summary plus manual/auto generation eligibility."""
    asset = await get_asset_or_404(db, asset_id)
    return DepreciationStatusResponse(**await DepreciationService(db).get_status(asset, today))


@router.get("/assets/{asset_id}/depreciation-preview", response_model=DepreciationPreviewResponse)
async def get_depreciation_preview(asset_id: UUID, db: DB, today: Today):
    """What the ledger would show as of today, computed without writing."""
    asset = await get_asset_or_404(db, asset_id)
    return DepreciationPreviewResponse(**await DepreciationService(db).get_preview(asset, today))


@router.get("/assets/{asset_id}/depreciation-schedule", response_model=DepreciationScheduleResponse)
async def get_depreciation_schedule(asset_id: UUID, db: DB):
    """Projected remaining periods."""
    asset = await get_asset_or_404(db, asset_id)
    rows = await DepreciationService(db).get_schedule(asset)
    return DepreciationScheduleResponse(
        asset_id=asset.id,
        items=[ScheduleRowResponse.model_validate(row) for row in rows],
        total_periods=len(rows),
        total_amount=sum((row.period_amount for row in rows), start=0),
    )


# ==================== Generation ====================

@router.post("/assets/{asset_id}/generate-depreciation", response_model=GenerationResultResponse)
async def generate_depreciation(asset_id: UUID, db: DB, today: Today):
    """Generate the next period now, regardless of its due date."""
    asset = await get_asset_or_404(db, asset_id)
    service = DepreciationService(db)
    try:
        result = await service.generate_single(asset)
    except DepreciationError as e:
        raise _rejected(e)
    return await _result_response(service, asset, today, result)


@router.post("/assets/{asset_id}/generate-pending-depreciation", response_model=GenerationResultResponse)
async def generate_pending_depreciation(asset_id: UUID, db: DB, today: Today):
    """Catch up every period due by the calendar."""
    asset = await get_asset_or_404(db, asset_id)
    service = DepreciationService(db)
    try:
        result = await service.generate_pending(asset, today)
    except DepreciationError as e:
        raise _rejected(e)
    return await _result_response(service, asset, today, result)


@router.post("/assets/{asset_id}/generate-multiple-depreciation", response_model=GenerationResultResponse)
async def generate_multiple_depreciation(
    asset_id: UUID,
    request: GenerateMultipleRequest,
    db: DB,
    today: Today,
):
    """Generate up to `count` periods."""
    if request.count > settings.MAX_BULK_PERIODS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"count may not exceed {settings.MAX_BULK_PERIODS}"
        )
    asset = await get_asset_or_404(db, asset_id)
    service = DepreciationService(db)
    try:
        result = await service.generate_multiple(asset, request.count)
    except DepreciationError as e:
        raise _rejected(e)
    return await _result_response(service, asset, today, result)


@router.post("/assets/{asset_id}/generate-until-zero", response_model=GenerationResultResponse)
async def generate_until_zero(asset_id: UUID, db: DB, today: Today):
    """Generate periods until book value reaches zero."""
    asset = await get_asset_or_404(db, asset_id)
    service = DepreciationService(db)
    try:
        result = await service.generate_until_zero(asset)
    except DepreciationError as e:
        raise _rejected(e)
    return await _result_response(service, asset, today, result)


@router.post("/assets/{asset_id}/generate-until-value", response_model=GenerationResultResponse)
async def generate_until_value(
    asset_id: UUID,
    request: GenerateUntilValueRequest,
    db: DB,
    today: Today,
):
    """Generate whole periods until book value is at or below the target."""
    asset = await get_asset_or_404(db, asset_id)
    service = DepreciationService(db)
    try:
        result = await service.generate_until_value(asset, request.target_value)
    except DepreciationError as e:
        raise _rejected(e)
    return await _result_response(service, asset, today, result)


@router.post("/assets/{asset_id}/reset-depreciation", response_model=ResetResponse)
async def reset_depreciation(asset_id: UUID, db: DB):
    """Delete the asset's whole ledger so it can be regenerated."""
    asset = await get_asset_or_404(db, asset_id)
    deleted = await DepreciationService(db).reset(asset)
    return ResetResponse(
        asset_id=asset.id,
        deleted=deleted,
        message=f"Deleted {deleted} depreciation record(s)",
    )


# ==================== System-wide ====================

@router.post("/depreciation/generate-all", response_model=SystemRunResponse)
async def generate_all_pending(db: DB, today: Today):
    """Catch up pending periods on every eligible asset."""
    result = await DepreciationService(db).generate_all_pending(today)
    return SystemRunResponse(**result)


@router.get("/depreciation/summary", response_model=SystemSummaryResponse)
async def get_system_summary(db: DB, today: Today):
    """Ledger totals across all assets."""
    return SystemSummaryResponse(**await DepreciationService(db).get_system_summary(today))
