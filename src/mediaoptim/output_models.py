from __future__ import annotations

from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

SkipReason = Literal["unsupported-extension", "outside-root", "cached"]


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: Path


class OptimizedOutcome(_Outcome):
    status: Literal["optimized"] = "optimized"
    original_bytes: int
    output_bytes: int
    quality: int
    renamed: bool = False
    within_budget: bool = True
    output_public_path: str
    references_updated: list[Path] = []

    @property
    def saving_pct(self) -> float:
        if not self.original_bytes:
            return 0.0
        return (1 - self.output_bytes / self.original_bytes) * 100


class SkippedOutcome(_Outcome):
    status: Literal["skipped"] = "skipped"
    reason: SkipReason


class DryRunOutcome(_Outcome):
    status: Literal["dry-run"] = "dry-run"
    original_bytes: int


class ErrorOutcome(_Outcome):
    status: Literal["error"] = "error"
    error: str
    error_type: str


ProcessingOutcome = Union[OptimizedOutcome, SkippedOutcome, DryRunOutcome, ErrorOutcome]


class RunSummary(BaseModel):
    optimized: int = 0
    skipped: int = 0
    dry_run: int = 0
    errors: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: list[ProcessingOutcome]) -> RunSummary:
        return cls(
            optimized=sum(1 for o in outcomes if o.status == "optimized"),
            skipped=sum(1 for o in outcomes if o.status == "skipped"),
            dry_run=sum(1 for o in outcomes if o.status == "dry-run"),
            errors=sum(1 for o in outcomes if o.status == "error"),
        )


class RunResult(BaseModel):
    processed: list[ProcessingOutcome] = []
    summary: RunSummary = RunSummary()
    cache_written: bool = False
