"""Pydantic schemas for the depreciation ledger."""
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field

from assetbook.schemas.base import BaseResponseSchema, BaseCreateSchema
from assetbook.services.depreciation_service import DepreciationFailure


# ==================== Ledger ====================

class DepreciationEntryResponse(BaseResponseSchema):
    """Response schema for Depreciation Entry."""
    id: UUID
    asset_id: UUID
    period_sequence: int
    period_date: date
    period_amount: Decimal
    cumulative_depreciation: Decimal
    book_value_after: Decimal
    created_at: datetime


class DepreciationFigures(BaseModel):
    """Fields shared by summary and status."""
    asset_id: UUID
    monthly_depreciation: Decimal
    accumulated_depreciation: Decimal
    current_value: Decimal
    depreciated_periods: int
    remaining_periods: int
    next_period_date: date
    completion_percentage: Decimal
    is_depreciable: bool
    elapsed_periods: int
    expected_periods: int
    pending_periods: int
    is_up_to_date: bool


class DepreciationSummaryResponse(DepreciationFigures):
    """Ledger summary with full history."""
    history: List[DepreciationEntryResponse] = []


class DepreciationStatusResponse(DepreciationFigures):
    """Summary plus what can be generated next."""
    can_generate_manual: bool
    can_generate_auto: bool
    blocking_reason: Optional[DepreciationFailure] = None
    next_sequence: int
    total_useful_life: int
    original_value: Decimal
    current_status: str
    purchase_date: date
    as_of: date


class DepreciationPreviewResponse(BaseModel):
    """As-of-today figures from the formula, without touching the ledger."""
    asset_id: UUID
    monthly_depreciation: Decimal
    accumulated_depreciation: Decimal
    current_value: Decimal
    periods_depreciated: int
    remaining_periods: int
    elapsed_periods: int
    pending_periods: int
    as_of: date


class ScheduleRowResponse(BaseResponseSchema):
    """One projected future period."""
    period_sequence: int
    period_date: date
    period_amount: Decimal
    cumulative_depreciation: Decimal
    book_value_after: Decimal


class DepreciationScheduleResponse(BaseModel):
    """Forward projection of remaining periods."""
    asset_id: UUID
    items: List[ScheduleRowResponse]
    total_periods: int
    total_amount: Decimal


# ==================== Generation ====================

class GenerateMultipleRequest(BaseCreateSchema):
    """Request to generate a fixed number of periods."""
    count: int = Field(..., ge=1, le=60)


class GenerateUntilValueRequest(BaseCreateSchema):
    """Request to generate periods until book value drops to a target."""
    target_value: Decimal = Field(..., ge=0)


class GenerationResultResponse(BaseModel):
    """Outcome of any generate call on a single asset."""
    asset_id: UUID
    processed: int
    requested: Optional[int] = None
    stopped_reason: Optional[DepreciationFailure] = None
    message: str
    summary: DepreciationFigures


class ResetResponse(BaseModel):
    asset_id: UUID
    deleted: int
    message: str


# ==================== System-wide ====================

class AssetRunDetail(BaseModel):
    asset_id: str
    asset_tag: Optional[str] = None
    pending_periods: int
    processed_periods: int
    success: bool
    stopped_reason: Optional[str] = None
    error: Optional[str] = None


class SystemRunResponse(BaseModel):
    """Result of catching up every eligible asset."""
    total_assets: int
    assets_processed: int
    total_processed: int
    details: List[AssetRunDetail]
    as_of: date


class SystemSummaryResponse(BaseModel):
    total_assets: int
    active_assets: int
    assets_with_pending_depreciation: int
    total_pending_periods: int
    total_depreciation_records: int
    total_depreciated_amount: Decimal
    as_of: date
