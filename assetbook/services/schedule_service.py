"""
Auto-depreciation schedule service.

Handles the single ``auto_depreciation`` settings row: reading/updating it,
working out when it next fires, and executing the system-wide catch-up when
it does.
"""
import logging
from calendar import monthrange
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetbook.models.schedule_setting import (
    AUTO_DEPRECIATION_SCHEDULE,
    DepreciationScheduleSetting,
    ScheduleFrequency,
)
from assetbook.services.depreciation_service import DepreciationService


logger = logging.getLogger(__name__)

DEFAULT_EXECUTION_TIME = time(13, 15, 0)
DEFAULT_TIMEZONE = "Asia/Jakarta"

# day_of_week uses 0 = Sunday
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

FREQUENCY_OPTIONS = {
    ScheduleFrequency.DAILY.value: "Every day at specified time",
    ScheduleFrequency.WEEKLY.value: "Every week on specified day and time",
    ScheduleFrequency.MONTHLY.value: "Every month on specified date and time",
    ScheduleFrequency.CUSTOM.value: "Custom cron expression",
}


class ScheduleError(Exception):
    """Invalid schedule configuration."""
    def __init__(self, message: str, details: Dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ScheduleError(f"Unknown timezone '{name}'", {"timezone": name})


def _at(moment: datetime, at: time) -> datetime:
    return moment.replace(hour=at.hour, minute=at.minute, second=at.second, microsecond=0)


def _on_day(moment: datetime, day: int) -> datetime:
    """Same month, given day clamped to the month's length."""
    return moment.replace(day=min(day, monthrange(moment.year, moment.month)[1]))


def calculate_next_run(setting: DepreciationScheduleSetting, now: datetime) -> Optional[datetime]:
    """
    Next time the schedule fires after ``now``.

    ``now`` must be timezone-aware; the result is expressed in the
    schedule's own timezone. Returns None when the schedule can't be
    evaluated (bad cron expression, missing weekday/day).
    """
    zone = get_zone(setting.timezone)
    local_now = now.astimezone(zone)
    frequency = setting.frequency

    if frequency == ScheduleFrequency.DAILY.value:
        next_run = _at(local_now, setting.execution_time)
        if next_run <= local_now:
            next_run += timedelta(days=1)
        return next_run

    if frequency == ScheduleFrequency.WEEKLY.value:
        if setting.day_of_week is None:
            return None
        # Python weekday(): Monday = 0
        target = (setting.day_of_week - 1) % 7
        days_ahead = (target - local_now.weekday()) % 7 or 7
        return _at(local_now + timedelta(days=days_ahead), setting.execution_time)

    if frequency == ScheduleFrequency.MONTHLY.value:
        if setting.day_of_month is None:
            return None
        next_run = _at(_on_day(local_now, setting.day_of_month), setting.execution_time)
        if next_run <= local_now:
            next_month = local_now.replace(day=1) + relativedelta(months=1)
            next_run = _at(_on_day(next_month, setting.day_of_month), setting.execution_time)
        return next_run

    if frequency == ScheduleFrequency.CUSTOM.value:
        if not setting.cron_expression:
            return None
        try:
            trigger = CronTrigger.from_crontab(setting.cron_expression, timezone=zone)
        except ValueError:
            logger.warning(f"Invalid cron expression '{setting.cron_expression}'")
            return None
        return trigger.get_next_fire_time(None, local_now + timedelta(seconds=1))

    return None


def should_run_now(setting: DepreciationScheduleSetting, now: datetime) -> bool:
    """True when ``now`` falls in the schedule's execution minute."""
    if not setting.is_active:
        return False

    local_now = now.astimezone(get_zone(setting.timezone))
    same_minute = (
        local_now.hour == setting.execution_time.hour
        and local_now.minute == setting.execution_time.minute
    )

    if setting.frequency == ScheduleFrequency.DAILY.value:
        return same_minute
    if setting.frequency == ScheduleFrequency.WEEKLY.value:
        return same_minute and (local_now.weekday() + 1) % 7 == setting.day_of_week
    if setting.frequency == ScheduleFrequency.MONTHLY.value:
        return same_minute and local_now.day == setting.day_of_month
    if setting.frequency == ScheduleFrequency.CUSTOM.value:
        next_fire = calculate_next_run(setting, local_now.replace(second=0, microsecond=0) - timedelta(seconds=1))
        return next_fire is not None and next_fire.strftime("%Y-%m-%d %H:%M") == local_now.strftime("%Y-%m-%d %H:%M")
    return False


def already_ran_this_minute(setting: DepreciationScheduleSetting, now: datetime) -> bool:
    if setting.last_run_at is None:
        return False
    last = setting.last_run_at
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    fmt = "%Y-%m-%d %H:%M"
    return last.astimezone(timezone.utc).strftime(fmt) == now.astimezone(timezone.utc).strftime(fmt)


def describe(setting: DepreciationScheduleSetting) -> str:
    at = setting.execution_time.strftime("%H:%M")
    if setting.frequency == ScheduleFrequency.DAILY.value:
        return f"Every day at {at} ({setting.timezone})"
    if setting.frequency == ScheduleFrequency.WEEKLY.value:
        day_name = DAY_NAMES[setting.day_of_week] if setting.day_of_week is not None else "Unknown"
        return f"Every {day_name} at {at} ({setting.timezone})"
    if setting.frequency == ScheduleFrequency.MONTHLY.value:
        return f"Every month on day {setting.day_of_month} at {at} ({setting.timezone})"
    if setting.frequency == ScheduleFrequency.CUSTOM.value:
        return f"Custom: {setting.cron_expression}"
    return "Not configured"


def validate_setting(setting: DepreciationScheduleSetting) -> None:
    """Frequency-specific fields must be present and in range."""
    frequency = setting.frequency
    if frequency not in FREQUENCY_OPTIONS:
        raise ScheduleError(f"Unknown frequency '{frequency}'", {"frequency": frequency})
    get_zone(setting.timezone)

    if frequency == ScheduleFrequency.WEEKLY.value:
        if setting.day_of_week is None or not 0 <= setting.day_of_week <= 6:
            raise ScheduleError("Weekly schedules require day_of_week between 0 and 6")
    elif frequency == ScheduleFrequency.MONTHLY.value:
        if setting.day_of_month is None or not 1 <= setting.day_of_month <= 31:
            raise ScheduleError("Monthly schedules require day_of_month between 1 and 31")
    elif frequency == ScheduleFrequency.CUSTOM.value:
        if not setting.cron_expression:
            raise ScheduleError("Custom schedules require a cron_expression")
        try:
            CronTrigger.from_crontab(setting.cron_expression)
        except ValueError as e:
            raise ScheduleError(f"Invalid cron expression: {e}", {"cron_expression": setting.cron_expression})


class ScheduleService:
    """Service for the auto-depreciation schedule."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_setting(self) -> DepreciationScheduleSetting:
        """Load the schedule row, creating the default one on first use."""
        result = await self.db.execute(
            select(DepreciationScheduleSetting)
            .where(DepreciationScheduleSetting.name == AUTO_DEPRECIATION_SCHEDULE)
        )
        setting = result.scalar_one_or_none()
        if setting:
            return setting

        setting = DepreciationScheduleSetting(
            name=AUTO_DEPRECIATION_SCHEDULE,
            is_active=True,
            frequency=ScheduleFrequency.DAILY.value,
            execution_time=DEFAULT_EXECUTION_TIME,
            timezone=DEFAULT_TIMEZONE,
            description="Automatic depreciation generation schedule",
        )
        self.db.add(setting)
        await self.db.commit()
        logger.info("Created default auto depreciation schedule")
        return setting

    async def update_setting(self, changes: Dict[str, Any], now: datetime) -> DepreciationScheduleSetting:
        """Apply a partial update, validate the merged result and recompute next_run_at."""
        setting = await self.get_setting()
        for field, value in changes.items():
            setattr(setting, field, value)

        try:
            validate_setting(setting)
        except ScheduleError:
            await self.db.rollback()
            raise

        setting.next_run_at = calculate_next_run(setting, now)
        await self.db.commit()
        logger.info(f"Updated auto depreciation schedule: {describe(setting)}")
        return setting

    async def toggle_active(self) -> DepreciationScheduleSetting:
        setting = await self.get_setting()
        setting.is_active = not setting.is_active
        await self.db.commit()
        logger.info(f"Auto depreciation schedule {'activated' if setting.is_active else 'deactivated'}")
        return setting

    async def execute(self, now: datetime, trigger: str = "schedule") -> Dict:
        """
        Run the system-wide catch-up as of ``now`` (in the schedule's
        timezone) and record the result on the settings row.
        """
        setting = await self.get_setting()
        today = now.astimezone(get_zone(setting.timezone)).date()

        logger.info(f"Executing auto depreciation ({trigger}) as of {today}")
        result = await DepreciationService(self.db).generate_all_pending(today)
        result["trigger"] = trigger

        await self.db.refresh(setting)
        setting.last_run_at = now.astimezone(timezone.utc)
        setting.last_run_result = result
        setting.next_run_at = calculate_next_run(setting, now)
        await self.db.commit()
        return result

    async def run_if_due(self, now: datetime) -> Optional[Dict]:
        """Scheduler tick: execute when the schedule is due and hasn't run this minute."""
        setting = await self.get_setting()
        if not should_run_now(setting, now) or already_ran_this_minute(setting, now):
            return None
        return await self.execute(now, trigger="schedule")
