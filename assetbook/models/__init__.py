# Models module
from assetbook.models.asset import Asset, AssetStatus, DepreciationEntry, INELIGIBLE_STATUSES
from assetbook.models.schedule_setting import (
    DepreciationScheduleSetting,
    ScheduleFrequency,
    AUTO_DEPRECIATION_SCHEDULE,
)

__all__ = [
    "Asset",
    "AssetStatus",
    "DepreciationEntry",
    "INELIGIBLE_STATUSES",
    "DepreciationScheduleSetting",
    "ScheduleFrequency",
    "AUTO_DEPRECIATION_SCHEDULE",
]
