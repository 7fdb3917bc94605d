"""Data models for the preflight check engine.

Defines the result categories reported through sinks, the per-check
outcome records, and the summary produced by one validation run.
"""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from node_preflight.errors import AggregateError, CheckFailure, ReportingError


class ResultCategory(str, Enum):
    """Category of a single reported observation, ordered by severity."""

    GOOD = "good"
    WARN = "warn"
    BAD = "bad"

    @property
    def rank(self) -> int:
        return _CATEGORY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ResultCategory):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ResultCategory):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ResultCategory):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ResultCategory):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def at_least(cls, minimum: ResultCategory) -> list[ResultCategory]:
        """Return every category at or above *minimum*, least severe first."""
        return [c for c in cls if c >= minimum]


_CATEGORY_RANK: dict[ResultCategory, int] = {
    ResultCategory.GOOD: 0,
    ResultCategory.WARN: 1,
    ResultCategory.BAD: 2,
}


class ReportEntry(BaseModel):
    """One observation recorded by a sink."""

    model_config = ConfigDict(frozen=True)

    item: str = Field(..., description="Name of the observed item, e.g. KERNEL_VERSION.")
    detail: str = Field(default="", description="Human-readable value or message.")
    category: ResultCategory = Field(..., description="Severity category of the observation.")


class CheckOutcome(BaseModel):
    """The outcome of running a single check once."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name of the check that ran.")
    passed: bool = Field(..., description="Whether the check met every expectation.")
    message: str = Field(default="", description="Failure message; empty when the check passed.")
    duration_ms: int = Field(default=0, description="Execution time in milliseconds.")


class ValidationSummary(BaseModel):
    """Aggregated result of one validation run.

    ``outcomes`` preserves the order in which checks ran.  ``error`` is
    ``None`` when every check passed, otherwise an :class:`AggregateError`
    holding one :class:`CheckFailure` per failed check.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcomes: tuple[CheckOutcome, ...] = Field(default=(), description="Per-check outcomes in run order.")
    error: AggregateError | None = Field(default=None, description="Combined failure, or None on success.")
    reporting_errors: tuple[ReportingError, ...] = Field(
        default=(),
        description="Sink failures observed during the run.  Never part of the verdict.",
    )
    duration_ms: int = Field(default=0, description="Total execution time in milliseconds.")

    @property
    def passed(self) -> bool:
        return self.error is None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.passed)

    @property
    def failures(self) -> tuple[CheckFailure, ...]:
        if self.error is None:
            return ()
        return self.error.errors


class Timer:
    """Simple monotonic timer for measuring check execution duration."""

    def __init__(self) -> None:
        self._start: float = 0.0

    def start(self) -> None:
        self._start = time.monotonic()

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)
