"""Aggregation of per-item outcomes into a single ``ModificationResult``."""

from __future__ import annotations

from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Iterable
from typing import Any

from .batch.models import ItemOutcome
from .batch.models import OutcomeStatus
from .exceptions import PlanMCPError
from .logger_config import ErrorCategory
from .logger_config import log_structured_error
from .models import EntitySummary
from .models import ModificationResult


class ResponseAccumulator:
    """Reporting sink for item outcomes. Never influences control flow."""

    def __init__(self, outcomes: Iterable[ItemOutcome] = ()):
        self._outcomes: list[ItemOutcome] = []
        self.extend(outcomes)

    def add(self, outcome: ItemOutcome) -> None:
        self._outcomes.append(outcome)

    def extend(self, outcomes: Iterable[ItemOutcome]) -> None:
        for outcome in outcomes:
            self.add(outcome)

    @property
    def outcomes(self) -> list[ItemOutcome]:
        return list(self._outcomes)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self._outcomes if o.status == status)

    @property
    def success_count(self) -> int:
        return self._count(OutcomeStatus.SUCCESS)

    @property
    def failure_count(self) -> int:
        return self._count(OutcomeStatus.FAILURE)

    @property
    def skipped_count(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def made_progress(self) -> bool:
        """True when at least one item was applied."""
        return self.success_count > 0

    def lines(self) -> list[str]:
        return [o.render() for o in self._outcomes]

    def errors(self) -> list[str]:
        return [o.render() for o in self._outcomes if o.status == OutcomeStatus.FAILURE]

    def message(self) -> str:
        return "\n".join(self.lines())

    def to_result(self, updated: EntitySummary | dict[str, Any] | None = None) -> ModificationResult:
        return ModificationResult(
            success=True,
            message=self.message(),
            updated=updated,
            affected_count=self.success_count,
            outcomes=self.outcomes,
        )


def success_result(
    message: str,
    updated: EntitySummary | dict[str, Any] | None = None,
    affected_count: int | None = None,
) -> ModificationResult:
    return ModificationResult(success=True, message=message, updated=updated, affected_count=affected_count)


def error_result(
    error: str,
    error_code: str | None = None,
    outcomes: list[ItemOutcome] | None = None,
) -> ModificationResult:
    return ModificationResult(
        success=False,
        message="Modification failed",
        error=error,
        error_code=error_code,
        outcomes=outcomes or [],
    )


async def safe_execute(
    operation: Callable[[], Awaitable[ModificationResult]],
    operation_name: str = "modification",
) -> ModificationResult:
    """Await ``operation()`` and turn any raised error into an ``error_result``."""
    try:
        return await operation()
    except PlanMCPError as e:
        log_structured_error(
            category=ErrorCategory.WARNING,
            message=e.message,
            exception=e,
            operation=operation_name,
            context={"error_code": e.error_code},
        )
        return error_result(e.message, e.error_code)
    except Exception as e:
        log_structured_error(
            category=ErrorCategory.ERROR,
            message=f"Unexpected error in {operation_name}: {e}",
            exception=e,
            operation=operation_name,
        )
        return error_result(str(e), "UNKNOWN_ERROR")
