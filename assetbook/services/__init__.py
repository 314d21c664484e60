from assetbook.services.depreciation_service import (
    DepreciationService,
    DepreciationFailure,
    DepreciationError,
    EntryOutcome,
    OutcomeStatus,
    BulkResult,
)
from assetbook.services.schedule_service import ScheduleService, ScheduleError

__all__ = [
    "DepreciationService",
    "DepreciationFailure",
    "DepreciationError",
    "EntryOutcome",
    "OutcomeStatus",
    "BulkResult",
    "ScheduleService",
    "ScheduleError",
]
