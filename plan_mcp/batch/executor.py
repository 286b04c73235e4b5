"""Sequential execution engine for modification batches.

Items are applied strictly in order to one shared entity; each item sees the
effects of the items before it. Item-level errors become ``ItemOutcome``
failures instead of propagating.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from pydantic import ValidationError

from ..context import ToolContext
from ..exceptions import HandlerExecutionError
from ..exceptions import InvalidRequestError
from ..exceptions import NoModificationSpecifiedError
from ..exceptions import PlanMCPError
from ..exceptions import UnknownActionError
from ..logger_config import ErrorCategory
from ..logger_config import log_structured_error
from .models import ExecutionReport
from .models import FailurePolicy
from .models import ItemOutcome
from .models import ModificationItem
from .registry import ActionParams
from .registry import ActionRegistry
from .registry import format_validation_error

logger = logging.getLogger(__name__)


def _coerce_item(raw: ModificationItem | dict[str, Any]) -> ModificationItem:
    if isinstance(raw, ModificationItem):
        return raw
    if not isinstance(raw, dict):
        raise InvalidRequestError(f"Invalid modification item: expected an object, got {type(raw).__name__}")
    try:
        return ModificationItem.model_validate(raw)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid modification item: {format_validation_error(e)}") from e


class ModificationExecutor:
    """Apply an ordered list of modification items to one entity."""

    def __init__(
        self,
        registry: ActionRegistry,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE_ON_ERROR,
        tool_name: str = "modification",
    ):
        self.registry = registry
        self.failure_policy = FailurePolicy(failure_policy)
        self.tool_name = tool_name

    async def execute(
        self,
        entity: Any,
        items: list[ModificationItem | dict[str, Any]],
        context: ToolContext | None = None,
    ) -> ExecutionReport:
        """Run every item against ``entity``.

        Args:
            entity: The resolved entity; handlers may mutate it or replace it
            items: Ordered modification items (models or raw dicts)
            context: Invocation context passed through to handlers

        Returns:
            ExecutionReport with one outcome per input item, in input order

        Raises:
            NoModificationSpecifiedError: If ``items`` is empty
        """
        if not items:
            raise NoModificationSpecifiedError()

        context = context or ToolContext()
        report = ExecutionReport(entity=entity)
        current = entity

        for index, raw in enumerate(items):
            if context.cancelled:
                report.cancelled = True
                self._skip_remaining(report, items, index)
                break

            outcome, current = await self._apply(index, raw, current, context)
            report.outcomes.append(outcome)

            if outcome.failed and self.failure_policy == FailurePolicy.FAIL_FAST:
                report.aborted = True
                self._skip_remaining(report, items, index + 1)
                break

        report.entity = current
        logger.debug(
            "%s: %d succeeded, %d failed, %d skipped",
            self.tool_name,
            report.succeeded,
            report.failed,
            report.skipped,
        )
        return report

    async def _apply(
        self, index: int, raw: ModificationItem | dict[str, Any], entity: Any, context: ToolContext
    ) -> tuple[ItemOutcome, Any]:
        action_name = raw.get("action") if isinstance(raw, dict) else getattr(raw, "action", None)
        action_name = str(action_name) if action_name is not None else "<missing>"

        try:
            item = _coerce_item(raw)
            definition = self.registry.get(item.action)
            if definition is None:
                raise UnknownActionError(item.action)

            params = ActionParams(
                target=definition.parse_target(item.target),
                changes=definition.parse_changes(item.changes),
                new_data=definition.parse_new_data(item.new_data),
            )
        except PlanMCPError as e:
            return ItemOutcome.failure(index, action_name, e), entity

        try:
            result = definition.execute(entity, params, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            wrapped = HandlerExecutionError(item.action, e)
            log_structured_error(
                category=ErrorCategory.WARNING,
                message=str(wrapped),
                exception=e,
                operation="execute_action",
                context={"tool_name": self.tool_name, "action": item.action, "item_index": index},
            )
            outcome = ItemOutcome.failure(index, item.action, wrapped)
            if isinstance(e, PlanMCPError):
                outcome.error_code = e.error_code
            return outcome, entity

        if result is not None:
            entity = result
        return ItemOutcome.success(index, item.action), entity

    @staticmethod
    def _skip_remaining(report: ExecutionReport, items: list, start: int) -> None:
        for index in range(start, len(items)):
            raw = items[index]
            action = raw.get("action") if isinstance(raw, dict) else getattr(raw, "action", None)
            report.outcomes.append(ItemOutcome.skipped(index, str(action) if action else "<missing>"))
