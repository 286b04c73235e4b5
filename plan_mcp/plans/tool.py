"""Wiring of the plan actions to an agentic tool backed by a SQL store."""

from __future__ import annotations

from typing import Any

from ..persistence import SqlEntityStore
from ..persistence import SqlTransactionalStore
from ..tools.agentic_tool import AgenticTool
from ..tools.agentic_tool import AgenticToolConfig
from ..tools.agentic_tool import create_agentic_tool
from .actions import PLAN_ACTIONS
from .models import Plan

PLAN_DOMAIN = "plan"
PLAN_TOOL_NAME = "plan_apply_modification"
PLAN_TOOL_DESCRIPTION = (
    "Applies granular modifications to a training plan: update, add or remove items, "
    "adjust set groups, rename days and edit plan-level fields."
)


def create_plan_store(store: SqlTransactionalStore) -> SqlEntityStore[Plan]:
    return SqlEntityStore(
        store, PLAN_DOMAIN, from_state=Plan.model_validate, to_state=Plan.to_state, owner_field="owner_id"
    )


def summarize_plan(plan: Plan) -> dict[str, Any]:
    return {
        "name": plan.name,
        "status": plan.status.value,
        "weeks": len(plan.weeks),
        "days": plan.total_days,
    }


def validate_plan(plan: Plan) -> bool | str:
    if not plan.weeks:
        return f"Plan {plan.id} has no weeks"
    return True


def create_plan_tool(plans: SqlEntityStore[Plan], **overrides: Any) -> AgenticTool[Plan]:
    """Build the plan modification tool.

    Keyword overrides are passed to ``AgenticToolConfig`` (hooks, failure
    policy, ``batch_supported``...).
    """
    options: dict[str, Any] = {
        "name": PLAN_TOOL_NAME,
        "domain": PLAN_DOMAIN,
        "description": PLAN_TOOL_DESCRIPTION,
        "entity_id_field": "plan_id",
        "resolve_entity": plans.resolve_entity,
        "save_entity": plans.save_entity,
        "actions": PLAN_ACTIONS,
        "validate_entity": validate_plan,
        "owner_of": lambda plan: plan.owner_id,
        "summarize": summarize_plan,
    }
    options.update(overrides)
    return create_agentic_tool(AgenticToolConfig(**options))
