"""Sync orchestration: full integration sync, write units and worker offload."""

from .enums import OutputFormat, SyncStrategy
from .orchestrator import SyncOrchestrator
from .repo_job import RepoJobPayload, fetch_repo_job
from .results import StageFailure, SyncStats
from .worker_pool import JobError, JobOutcome, WorkerPool
from .writer import UpsertWriter

__all__ = [
    "JobError",
    "JobOutcome",
    "OutputFormat",
    "RepoJobPayload",
    "StageFailure",
    "SyncOrchestrator",
    "SyncStats",
    "SyncStrategy",
    "UpsertWriter",
    "WorkerPool",
    "fetch_repo_job",
]
