"""Ingest pipeline: scheduling, deadline and orchestration."""

from .deadline import Deadline
from .models import RunResult
from .orchestrator import IngestOrchestrator, ingest_once
from .scheduler import RunLimits, run_pool, select_sources

__all__ = [
    "Deadline",
    "IngestOrchestrator",
    "RunLimits",
    "RunResult",
    "ingest_once",
    "run_pool",
    "select_sources",
]
