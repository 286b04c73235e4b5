"""Data structures for modification batches.

A batch is an ordered list of ``ModificationItem`` applied to one entity.
Each item produces exactly one ``ItemOutcome``; the executor bundles them
into an ``ExecutionReport``.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class FailurePolicy(str, Enum):
    """How a batch reacts to a failed item."""

    CONTINUE_ON_ERROR = "continue_on_error"
    FAIL_FAST = "fail_fast"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class ModificationItem(BaseModel):
    """A single edit: an action name plus its structured inputs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: str = Field(..., description="Registered action name")
    target: dict[str, Any] | None = Field(default=None, description="Address inside the entity")
    changes: dict[str, Any] | None = Field(default=None, description="Partial field overwrite")
    new_data: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("new_data", "newData"),
        description="Payload for actions that insert structure",
    )


class ItemOutcome(BaseModel):
    """Result of applying one modification item."""

    index: int = Field(..., description="Position of the item in the batch")
    action: str = Field(..., description="Action name as requested")
    status: OutcomeStatus
    error_code: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILURE

    def render(self) -> str:
        """Human-readable line for this outcome."""
        if self.status == OutcomeStatus.SUCCESS:
            return f"✅ {self.action} completed"
        if self.status == OutcomeStatus.SKIPPED:
            return f"⏭️ {self.action} skipped"
        return f"❌ {self.error}"

    @classmethod
    def success(cls, index: int, action: str) -> "ItemOutcome":
        return cls(index=index, action=action, status=OutcomeStatus.SUCCESS)

    @classmethod
    def failure(cls, index: int, action: str, error: Exception) -> "ItemOutcome":
        return cls(
            index=index,
            action=action,
            status=OutcomeStatus.FAILURE,
            error_code=getattr(error, "error_code", "UNKNOWN_ERROR"),
            error=str(error),
        )

    @classmethod
    def skipped(cls, index: int, action: str) -> "ItemOutcome":
        return cls(index=index, action=action, status=OutcomeStatus.SKIPPED)


class ExecutionReport(BaseModel):
    """Final entity plus the per-item outcomes of one executor run."""

    entity: Any = None
    outcomes: list[ItemOutcome] = Field(default_factory=list)
    aborted: bool = Field(default=False, description="True when fail-fast stopped the batch")
    cancelled: bool = Field(default=False, description="True when the abort signal was observed")

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.SKIPPED)

    @property
    def first_failure(self) -> ItemOutcome | None:
        return next((o for o in self.outcomes if o.failed), None)
