"""
Stage Results - Explicit outcomes for every pipeline stage.

Callers branch on ``StageResult.outcome`` instead of catching exceptions:
an unsupported stage, a stage with nothing to offer, an empty result and a
transient failure are all distinct values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from flixhub.core.exceptions import FlixHubError


T = TypeVar("T")


class Stage(str, Enum):
    """The four provider pipeline stages."""

    CATALOG = "catalog"
    SEARCH = "search"
    DETAILS = "details"
    LINKS = "links"


class Outcome(str, Enum):
    """Terminal state of one stage invocation."""

    SUCCEEDED = "succeeded"
    EMPTY = "empty"
    CAPABILITY_ABSENT = "capability_absent"
    NOT_IMPLEMENTED = "not_implemented"
    FAILED = "failed"
    MISCONFIGURED = "misconfigured"
    CANCELLED = "cancelled"


class StageOutcomeError(FlixHubError):
    """Raised by ``StageResult.unwrap`` when there is no data to return."""

    def __init__(self, result: "StageResult"):
        super().__init__(
            f"Stage {result.stage.value} finished as {result.outcome.value}",
            details=result.error,
        )
        self.result = result


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one stage invocation, with data or the error behind it."""

    stage: Stage
    outcome: Outcome
    data: Optional[T] = None
    error: Optional[BaseException] = None
    provider_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCEEDED

    @property
    def retryable(self) -> bool:
        """Only transient failures may be retried automatically."""
        return self.outcome == Outcome.FAILED

    @property
    def is_defect(self) -> bool:
        return self.outcome == Outcome.MISCONFIGURED

    def unwrap(self) -> T:
        """Return the data of a successful result or raise StageOutcomeError."""
        if self.outcome != Outcome.SUCCEEDED or self.data is None:
            raise StageOutcomeError(self)
        return self.data

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.stage.value}: {self.outcome.value} ({self.error})"
        return f"{self.stage.value}: {self.outcome.value}"


__all__ = ["Stage", "Outcome", "StageResult", "StageOutcomeError"]
