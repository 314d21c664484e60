"""Pydantic schemas for the auto-depreciation schedule."""
from datetime import datetime, time
from typing import Optional
from uuid import UUID
from pydantic import Field

from assetbook.schemas.base import BaseResponseSchema, BaseUpdateSchema
from assetbook.models.schedule_setting import ScheduleFrequency


class ScheduleSettingResponse(BaseResponseSchema):
    id: UUID
    name: str
    is_active: bool
    frequency: str
    execution_time: time
    timezone: str
    cron_expression: Optional[str] = None
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    last_run_result: Optional[dict] = None
    description: Optional[str] = None
    schedule_description: str = ""


class ScheduleSettingUpdate(BaseUpdateSchema):
    """Partial update; frequency-specific fields are checked against the merged row."""
    is_active: Optional[bool] = None
    frequency: Optional[ScheduleFrequency] = None
    execution_time: Optional[time] = None
    timezone: Optional[str] = Field(None, max_length=64)
    cron_expression: Optional[str] = Field(None, max_length=100)
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    description: Optional[str] = None


class ScheduleStatusResponse(BaseResponseSchema):
    is_active: bool
    schedule_description: str = ""
    current_time: datetime
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    should_run_now: bool
    last_run_result: Optional[dict] = None
