"""Modification batch engine: action registry, executor and outcome models."""

from .executor import ModificationExecutor
from .models import ExecutionReport
from .models import FailurePolicy
from .models import ItemOutcome
from .models import ModificationItem
from .models import OutcomeStatus
from .registry import ActionDefinition
from .registry import ActionParams
from .registry import ActionRegistry
from .registry import define_action
from .registry import format_validation_error

__all__ = [
    "ActionDefinition",
    "ActionParams",
    "ActionRegistry",
    "ExecutionReport",
    "FailurePolicy",
    "ItemOutcome",
    "ModificationExecutor",
    "ModificationItem",
    "OutcomeStatus",
    "define_action",
    "format_validation_error",
]
