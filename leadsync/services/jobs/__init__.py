"""
Background Jobs
Periodic lead sync scheduler (in-process) and the one-shot cron entry point
"""
from leadsync.services.jobs.scheduler import SyncScheduler

__all__ = ["SyncScheduler"]
