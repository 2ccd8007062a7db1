"""Run result models."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class RunResult(BaseModel):
    """Outcome of one ``ingest_once``/``discover_once`` invocation."""

    ok: bool = Field(..., description="False only when the run could not start")
    added: int = Field(0, description="Items admitted")
    skipped: int = Field(0, description="Sources/candidates skipped")
    stats: Dict[str, Any] = Field(default_factory=dict, description="Run diagnostics")

    @property
    def stopped_early(self) -> bool:
        return bool(self.stats.get("stopped_early"))

    @property
    def should_retry(self) -> bool:
        """Signal for the external trigger to try again later."""
        return not self.ok or (self.stopped_early and self.added == 0)
