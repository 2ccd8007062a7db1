"""Run model for auditing orchestrator invocations."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DBModel


class IngestRun(DBModel):
    """One audit record per ingest or discovery invocation."""

    kind: str = Field("ingest", description="ingest or discover")
    started_at: datetime = Field(..., description="When the run started")
    finished_at: Optional[datetime] = Field(None, description="When the run finished")
    ok: bool = Field(False, description="Whether the run completed")
    added: int = Field(0, description="Items admitted")
    skipped: int = Field(0, description="Sources/candidates skipped")
    message: str = Field("", description="Short human-readable outcome")
    stats_json: Optional[Dict[str, Any]] = Field(None, description="Run diagnostics")
