"""Modification actions for plans.

Weeks and days are addressed by index (both default to 0); items by index
or fuzzy name, with the index winning when both are given. Field updates
overwrite, so applying the same changes twice equals applying them once.
"""

from typing import ClassVar

from pydantic import Field

from ..batch import ActionParams
from ..batch import define_action
from ..context import ToolContext
from ..exceptions import InvalidRequestError
from ..exceptions import TargetNotFoundError
from ..utils.fuzzy_matching import resolve_index
from ..utils.schema_builders import ContractModel
from ..utils.schema_builders import SetGroupFields
from ..utils.schema_builders import Status
from ..utils.schema_builders import changed_fields
from ..utils.schema_builders import create_target_schema
from ..utils.schema_builders import generate_id
from ..utils.schema_builders import require_changes_for_update
from .models import Plan
from .models import PlanDay
from .models import PlanItem
from .models import PlanWeek
from .models import SetGroup

# === Contracts ===

DayTarget = create_target_schema("PlanDayTarget", week=True, day=True)
ItemTarget = create_target_schema("PlanItemTarget", week=True, day=True, item_field="item")
SetGroupTarget = create_target_schema(
    "PlanSetGroupTarget", week=True, day=True, item_field="item", sub_item_field="set_group"
)
InsertTarget = create_target_schema(
    "PlanInsertTarget",
    week=True,
    day=True,
    custom_fields={"position": (int | None, Field(default=None, ge=0, description="Insert position (default: end)"))},
)
PlanTarget = create_target_schema("PlanTarget")


class ItemChanges(ContractModel):
    non_nullable_fields: ClassVar[tuple[str, ...]] = ("name",)

    name: str | None = Field(default=None, min_length=1)
    sets: int | None = Field(default=None, gt=0)
    reps: int | None = Field(default=None, gt=0)
    weight: float | None = Field(default=None, ge=0, description="Weight in kg")
    rpe: float | None = Field(default=None, ge=1, le=10)
    rest: int | None = Field(default=None, gt=0, description="Rest time in seconds")
    notes: str | None = None


class DayChanges(ContractModel):
    name: str = Field(..., min_length=1)


class PlanChanges(ContractModel):
    non_nullable_fields: ClassVar[tuple[str, ...]] = ("name", "status")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: Status | None = None


class NewItem(ContractModel):
    name: str = Field(..., min_length=1)
    sets: int | None = Field(default=None, gt=0)
    reps: int | None = Field(default=None, gt=0)
    weight: float | None = Field(default=None, ge=0)
    rpe: float | None = Field(default=None, ge=1, le=10)
    rest: int | None = Field(default=None, gt=0)
    notes: str | None = None
    set_groups: list[SetGroupFields] = Field(default_factory=list)


# === Target resolution ===


def _week(plan: Plan, target) -> PlanWeek:
    index = target.week_index if target.week_index is not None else 0
    if index >= len(plan.weeks):
        raise TargetNotFoundError("week", index, available=len(plan.weeks))
    return plan.weeks[index]


def _day(plan: Plan, target) -> PlanDay:
    week = _week(plan, target)
    index = target.day_index if target.day_index is not None else 0
    if index >= len(week.days):
        raise TargetNotFoundError("day", index, available=len(week.days))
    return week.days[index]


def _item_index(day: PlanDay, target) -> int:
    if target.item_index is None and target.item_name is None:
        raise InvalidRequestError("item_index or item_name is required")
    index = resolve_index(day.items, index=target.item_index, name=target.item_name)
    if index < 0:
        reference = target.item_index if target.item_index is not None else target.item_name
        raise TargetNotFoundError("item", reference, available=len(day.items))
    return index


def _apply(model, fields: dict) -> None:
    """Set ``fields`` on ``model`` only if the result is still a valid model."""
    updated = type(model).model_validate({**model.model_dump(), **fields})
    for key in fields:
        setattr(model, key, getattr(updated, key))


# === Handlers ===


def update_item(plan: Plan, params: ActionParams, context: ToolContext) -> None:
    fields = require_changes_for_update("update_item", params.changes)
    day = _day(plan, params.target)
    _apply(day.items[_item_index(day, params.target)], fields)


def add_item(plan: Plan, params: ActionParams, context: ToolContext) -> None:
    if params.new_data is None:
        raise InvalidRequestError("new_data is required for add_item")
    day = _day(plan, params.target)
    data = params.new_data.model_dump(exclude={"set_groups"})
    set_groups = [SetGroup(**changed_fields(group)) for group in params.new_data.set_groups]
    item = PlanItem(id=generate_id("item"), set_groups=set_groups, **data)

    position = params.target.position
    if position is None or position >= len(day.items):
        day.items.append(item)
    else:
        day.items.insert(position, item)


def remove_item(plan: Plan, params: ActionParams, context: ToolContext) -> None:
    day = _day(plan, params.target)
    day.items.pop(_item_index(day, params.target))


def update_set_group(plan: Plan, params: ActionParams, context: ToolContext) -> None:
    fields = require_changes_for_update("update_set_group", params.changes)
    day = _day(plan, params.target)
    item = day.items[_item_index(day, params.target)]
    index = params.target.set_group_index if params.target.set_group_index is not None else 0
    if index >= len(item.set_groups):
        raise TargetNotFoundError("set_group", index, available=len(item.set_groups))
    _apply(item.set_groups[index], fields)


def rename_day(plan: Plan, params: ActionParams, context: ToolContext) -> None:
    if params.changes is None:
        raise InvalidRequestError("changes.name is required for rename_day")
    _day(plan, params.target).name = params.changes.name


def update_plan(plan: Plan, params: ActionParams, context: ToolContext) -> None:
    _apply(plan, require_changes_for_update("update_plan", params.changes))


PLAN_ACTIONS = [
    define_action(
        "update_item",
        update_item,
        description="Update fields of an item (name, sets, reps, weight, rpe, rest, notes)",
        target=ItemTarget,
        changes=ItemChanges,
    ),
    define_action(
        "add_item",
        add_item,
        description="Add a new item to a day, optionally at a position",
        target=InsertTarget,
        new_data=NewItem,
    ),
    define_action("remove_item", remove_item, description="Remove an item from a day", target=ItemTarget),
    define_action(
        "update_set_group",
        update_set_group,
        description="Update a set group of an item (count, reps, weight, intensity, rpe, rest)",
        target=SetGroupTarget,
        changes=SetGroupFields,
    ),
    define_action("rename_day", rename_day, description="Rename a day", target=DayTarget, changes=DayChanges),
    define_action(
        "update_plan",
        update_plan,
        description="Update plan-level fields (name, description, status)",
        target=PlanTarget,
        changes=PlanChanges,
    ),
]
