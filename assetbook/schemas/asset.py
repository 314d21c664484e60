"""Pydantic schemas for the asset register."""
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field

from assetbook.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from assetbook.models.asset import AssetStatus


class AssetBase(BaseModel):
    """Base schema for Asset."""
    asset_tag: str = Field(..., max_length=50)
    name: str = Field(..., max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)

    value: Decimal = Field(..., ge=0)
    purchase_date: date
    useful_life: int = Field(..., ge=1, description="Useful life in months")
    status: AssetStatus = AssetStatus.IN_USE


class AssetCreate(AssetBase, BaseCreateSchema):
    """Schema for creating Asset."""
    pass


class AssetUpdate(BaseUpdateSchema):
    """Schema for updating Asset."""
    name: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)

    value: Optional[Decimal] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    useful_life: Optional[int] = Field(None, ge=1)
    status: Optional[AssetStatus] = None


class AssetResponse(BaseResponseSchema):
    """Response schema for Asset."""
    id: UUID
    asset_tag: str
    name: str
    category: Optional[str] = None
    location: Optional[str] = None

    value: Decimal
    purchase_date: date
    useful_life: int
    status: str

    created_at: datetime
    updated_at: datetime


class AssetUpdateResponse(AssetResponse):
    """Asset after an update, flagging when the ledger no longer matches it."""
    ledger_reset_recommended: bool = False
    changed_fields: List[str] = []


class AssetListResponse(BaseModel):
    """Response for listing Assets."""
    items: List[AssetResponse]
    total: int
    page: int = 1
    size: int = 50
    pages: int = 1
