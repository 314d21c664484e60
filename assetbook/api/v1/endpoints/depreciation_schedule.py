"""API endpoints for the auto-depreciation schedule."""
import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from assetbook.models.schedule_setting import DepreciationScheduleSetting
from assetbook.schemas.depreciation import SystemRunResponse
from assetbook.schemas.schedule import (
    ScheduleSettingResponse,
    ScheduleSettingUpdate,
    ScheduleStatusResponse,
)
from assetbook.services.schedule_service import (
    FREQUENCY_OPTIONS,
    ScheduleError,
    ScheduleService,
    describe,
    should_run_now,
)
from assetbook.api.deps import DB, business_now


logger = logging.getLogger(__name__)

router = APIRouter()


def _setting_response(setting: DepreciationScheduleSetting) -> ScheduleSettingResponse:
    response = ScheduleSettingResponse.model_validate(setting)
    response.schedule_description = describe(setting)
    return response


@router.get("", response_model=ScheduleSettingResponse)
async def get_schedule(db: DB):
    """Get the auto-depreciation schedule, creating the default on first use."""
    setting = await ScheduleService(db).get_setting()
    return _setting_response(setting)


@router.put("", response_model=ScheduleSettingResponse)
async def update_schedule(schedule_in: ScheduleSettingUpdate, db: DB):
    """Update the schedule; next_run_at is recomputed from the merged settings."""
    changes = schedule_in.model_dump(exclude_unset=True)
    if changes.get("frequency") is not None:
        changes["frequency"] = changes["frequency"].value

    try:
        setting = await ScheduleService(db).update_setting(changes, business_now())
    except ScheduleError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": e.message, "details": e.details}
        )
    return _setting_response(setting)


@router.post("/toggle", response_model=ScheduleSettingResponse)
async def toggle_schedule(db: DB):
    """Flip the schedule between active and inactive."""
    setting = await ScheduleService(db).toggle_active()
    return _setting_response(setting)


@router.post("/run-now", response_model=SystemRunResponse)
async def run_schedule_now(db: DB):
    """Execute the system-wide catch-up immediately, whatever the schedule says."""
    return await ScheduleService(db).execute(business_now(), trigger="manual")


@router.get("/status", response_model=ScheduleStatusResponse)
async def get_schedule_status(db: DB):
    """Whether the schedule is active and due right now."""
    setting = await ScheduleService(db).get_setting()
    now = business_now()
    return ScheduleStatusResponse(
        is_active=setting.is_active,
        schedule_description=describe(setting),
        current_time=now,
        last_run_at=setting.last_run_at,
        next_run_at=setting.next_run_at,
        should_run_now=should_run_now(setting, now),
        last_run_result=setting.last_run_result,
    )


@router.get("/frequencies", response_model=List[dict])
async def get_frequency_options():
    """Available schedule frequencies."""
    return [{"value": value, "label": label} for value, label in FREQUENCY_OPTIONS.items()]
