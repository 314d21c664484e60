"""Auto-depreciation schedule settings."""
import uuid
from datetime import datetime, time, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Integer, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from assetbook.database import Base
from assetbook.db_types import UUIDType, JSONType


AUTO_DEPRECIATION_SCHEDULE = "auto_depreciation"


class ScheduleFrequency(str, Enum):
    """How often the auto-depreciation run fires."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class DepreciationScheduleSetting(Base):
    """
    Settings row driving the periodic system-wide depreciation catch-up.
    """
    __tablename__ = "depreciation_schedule_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    frequency: Mapped[str] = mapped_column(
        String(20),
        default=ScheduleFrequency.DAILY.value,
        nullable=False,
        comment="daily, weekly, monthly, custom"
    )
    execution_time: Mapped[time] = mapped_column(Time, default=time(0, 0), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="Asia/Jakarta", nullable=False)
    cron_expression: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    day_of_week: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="0-6, 0 = Sunday"
    )
    day_of_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="1-31")

    # Run bookkeeping
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_run_result: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<DepreciationScheduleSetting(name='{self.name}', frequency='{self.frequency}')>"
