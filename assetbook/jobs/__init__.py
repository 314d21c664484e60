"""
Background Jobs Module

Handles scheduled tasks for:
- Automatic depreciation catch-up
"""

from assetbook.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status
from assetbook.jobs.depreciation_jobs import run_scheduled_depreciation

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "get_job_status",
    "run_scheduled_depreciation",
]
