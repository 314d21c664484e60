"""
Depreciation Jobs

Scheduler tick for the auto-depreciation run. The settings row decides
whether a tick actually executes; the tick itself only polls.
"""

import logging
from typing import Any, Dict, Optional

from assetbook.api.deps import business_now
from assetbook.database import get_db_session
from assetbook.services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)


async def run_scheduled_depreciation() -> Optional[Dict[str, Any]]:
    """
    Check the auto-depreciation schedule and run the system-wide
    catch-up when it is due.
    """
    now = business_now()
    async with get_db_session() as session:
        result = await ScheduleService(session).run_if_due(now)

    if result is not None:
        logger.info(
            f"Scheduled depreciation completed at {now.isoformat()}: "
            f"{result['total_processed']} periods across {result['assets_processed']} assets"
        )
    return result
