"""Reusable pydantic contract builders for action targets and changes.

Field names are snake_case; every contract also accepts the camelCase
spelling (``week_index`` or ``weekIndex``).
"""

import time
import uuid
from enum import Enum
from typing import Any
from typing import ClassVar

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import create_model
from pydantic import model_validator
from pydantic.alias_generators import to_camel

from ..exceptions import ChangesValidationError

UPDATE_REQUIRES_CHANGES = 'For update actions, you MUST provide at least one field in "changes"'


class ContractModel(BaseModel):
    """Base for action contracts: camelCase aliases, unknown keys rejected.

    Fields listed in ``non_nullable_fields`` may be omitted but not sent as
    an explicit null, since they map onto required entity fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    non_nullable_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        nulls = [
            name for name in self.non_nullable_fields if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


# === Target Schema Builders ===


def _index_field(description: str) -> tuple[Any, Any]:
    return (int | None, Field(default=None, ge=0, description=description))


def create_target_schema(
    model_name: str = "Target",
    week: bool = False,
    day: bool = False,
    item_field: str | None = None,
    sub_item_field: str | None = None,
    custom_fields: dict[str, tuple[Any, Any]] | None = None,
) -> type[ContractModel]:
    """Build a hierarchical target contract.

    Example:
        ``create_target_schema(week=True, day=True, item_field="exercise", sub_item_field="set_group")``
        gives ``week_index``, ``day_index``, ``exercise_index``, ``exercise_name``
        and ``set_group_index``, all optional.
    """
    fields: dict[str, tuple[Any, Any]] = {}
    if week:
        fields["week_index"] = _index_field("Week index (0-based)")
    if day:
        fields["day_index"] = _index_field("Day index (0-based)")
    if item_field:
        fields[f"{item_field}_index"] = _index_field(f"{item_field} index (0-based)")
        fields[f"{item_field}_name"] = (
            str | None,
            Field(default=None, description=f"{item_field} name for fuzzy matching"),
        )
    if sub_item_field:
        fields[f"{sub_item_field}_index"] = _index_field(f"{sub_item_field} index (0-based)")
    if custom_fields:
        fields.update(custom_fields)

    return create_model(model_name, __base__=ContractModel, **fields)


# === Range Field Builders ===


def create_range_fields(
    base_name: str,
    annotation: Any,
    description: str | None = None,
    **constraints: Any,
) -> dict[str, tuple[Any, Any]]:
    """Return ``{base, base_max}`` optional field definitions for ``create_model``."""
    desc = description or base_name
    return {
        base_name: (annotation | None, Field(default=None, description=f"{desc} (min value for ranges)", **constraints)),
        f"{base_name}_max": (
            annotation | None,
            Field(default=None, description=f"{desc} max value for ranges", **constraints),
        ),
    }


# === Common Schemas ===


class SetFields(ContractModel):
    """Per-set prescription fields, with min/max pairs for ranges."""

    reps: int | None = Field(default=None, gt=0, description="Repetitions per set")
    reps_max: int | None = Field(default=None, gt=0, description="Max reps for rep ranges (e.g., 8-12)")
    duration: float | None = Field(default=None, gt=0, description="Duration in seconds")
    weight: float | None = Field(default=None, ge=0, description="Weight in kg")
    weight_max: float | None = Field(default=None, ge=0, description="Max weight for ranges")
    weight_lbs: float | None = Field(default=None, ge=0, description="Weight in lbs")
    intensity_percent: float | None = Field(default=None, ge=0, le=100, description="Intensity as % of 1RM")
    intensity_percent_max: float | None = Field(default=None, ge=0, le=100, description="Max intensity %")
    rpe: float | None = Field(default=None, ge=1, le=10, description="RPE 1-10")
    rpe_max: float | None = Field(default=None, ge=1, le=10, description="Max RPE for ranges")
    rest: int | None = Field(default=None, gt=0, description="Rest time in seconds")


class SetGroupFields(SetFields):
    non_nullable_fields: ClassVar[tuple[str, ...]] = ("count",)

    count: int | None = Field(default=None, gt=0, description="Number of sets")


class Macros(ContractModel):
    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0, description="Protein in grams")
    carbs: float | None = Field(default=None, ge=0, description="Carbohydrates in grams")
    fat: float | None = Field(default=None, ge=0, description="Fat in grams")


class Status(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"
    ON_HOLD = "ON_HOLD"
    ACTIVE = "ACTIVE"
    DRAFT = "DRAFT"
    PAUSED = "PAUSED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# === Validation Helpers ===


def changed_fields(changes: BaseModel | dict[str, Any] | None) -> dict[str, Any]:
    """Fields explicitly provided in a changes payload (partial-update view)."""
    if changes is None:
        return {}
    if isinstance(changes, BaseModel):
        return changes.model_dump(exclude_unset=True)
    return dict(changes)


def require_changes_for_update(action: str, changes: BaseModel | dict[str, Any] | None) -> dict[str, Any]:
    """Return the provided fields, rejecting an empty payload for ``update_*`` actions."""
    fields = changed_fields(changes)
    if action.startswith("update_") and not fields:
        raise ChangesValidationError(action, UPDATE_REQUIRES_CHANGES)
    return fields


# === ID Generators ===


def generate_id(prefix: str = "id") -> str:
    """Unique id of the form ``<prefix>_<epoch ms>_<6 hex chars>``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
