"""Agentic modification tools: one callable that applies action/target/changes edits.

A tool is built from an ``AgenticToolConfig``: how to resolve and save the
entity, and a static set of actions. Calling ``execute`` runs the full cycle
(resolve, checks, executor, hooks, versioned save, re-fetch) and always
returns a ``ModificationResult``.

Example:
    tool = create_agentic_tool(AgenticToolConfig(
        name="plan_apply_modification",
        domain="plan",
        description="Applies modifications to training plans",
        entity_id_field="plan_id",
        resolve_entity=plans.resolve_entity,
        save_entity=plans.save_entity,
        actions=[define_action("rename_day", rename_day, target=DayTarget, changes=RenameChanges)],
    ))
    result = await tool.execute({"plan_id": "plan_1", "action": "rename_day", ...}, ctx)
"""

from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel
from pydantic import Field
from pydantic import create_model

from ..batch import ActionDefinition
from ..batch import ActionRegistry
from ..batch import FailurePolicy
from ..batch import ModificationExecutor
from ..batch import define_action
from ..config import get_settings
from ..context import ToolContext
from ..context import get_effective_user_id
from ..exceptions import EntityNotFoundError
from ..exceptions import EntityValidationError
from ..exceptions import InvalidRequestError
from ..exceptions import ModificationCancelledError
from ..exceptions import NoModificationSpecifiedError
from ..exceptions import PersistenceError
from ..exceptions import PlanMCPError
from ..exceptions import UnauthorizedError
from ..logger_config import ErrorCategory
from ..logger_config import log_structured_error
from ..metrics_config import record_item_outcomes
from ..models import EntitySummary
from ..models import ModificationResult
from ..response import ResponseAccumulator
from ..response import error_result
from ..response import safe_execute

logger = logging.getLogger(__name__)

E = TypeVar("E")

TARGETING_HELP = "**Targeting:**\nUse indices for precise targeting or names for fuzzy matching."


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def default_version_of(entity: Any) -> int | None:
    if isinstance(entity, Mapping):
        return entity.get("version")
    return getattr(entity, "version", None)


def default_state_of(entity: Any) -> dict[str, Any] | None:
    if isinstance(entity, BaseModel):
        return entity.model_dump(mode="json")
    if isinstance(entity, Mapping):
        return dict(entity)
    return None


def _pascal(name: str) -> str:
    return "".join(part.capitalize() for part in name.replace("-", "_").split("_") if part)


@dataclass
class AgenticToolConfig(Generic[E]):
    """Everything needed to build an agentic modification tool.

    ``save_entity`` is called as
    ``save_entity(entity_id, entity, context, prior_state=..., expected_version=...)``
    and should return the new version. ``owner_of``, hooks and ``validate_entity``
    may be sync or async.
    """

    name: str
    domain: str
    description: str
    entity_id_field: str
    resolve_entity: Callable[[str, ToolContext], Awaitable[E | None]]
    save_entity: Callable[..., Awaitable[int | None]]
    actions: Mapping[str, ActionDefinition] | Iterable[ActionDefinition]
    batch_supported: bool | None = None
    failure_policy: FailurePolicy | None = None
    before_save: Callable[[E, ToolContext], Any] | None = None
    after_save: Callable[[E, ToolContext], Any] | None = None
    validate_entity: Callable[[E], bool | str] | None = None
    owner_of: Callable[[E], Any] | None = None
    summarize: Callable[[E], dict[str, Any]] | None = None
    version_of: Callable[[E], int | None] = default_version_of
    state_of: Callable[[E], dict[str, Any] | None] = default_state_of


class AgenticTool(Generic[E]):
    """A built agentic tool. Construct through ``create_agentic_tool``."""

    def __init__(self, config: AgenticToolConfig[E]):
        settings = get_settings()
        self.config = config
        self.name = config.name
        self.domain = config.domain
        self.entity_id_field = config.entity_id_field
        self.registry = ActionRegistry(config.actions)
        self.batch_supported = settings.batch_supported if config.batch_supported is None else config.batch_supported
        self.failure_policy = FailurePolicy(config.failure_policy or settings.failure_policy)
        self.executor = ModificationExecutor(self.registry, self.failure_policy, tool_name=self.name)
        self.description = (
            f"{config.description}\n\n**Supported Actions:**\n{self.registry.describe()}\n\n{TARGETING_HELP}"
        )
        self.parameters = self._build_parameters()

    # === Declared input contract ===

    def _build_parameters(self) -> type[BaseModel]:
        action_type = self.registry.action_enum()
        target_type = self.registry.target_contract()
        changes_type = self.registry.changes_contract()
        new_data_type = self.registry.new_data_contract()
        action_help = f"Action: {', '.join(self.registry.names)}"
        prefix = _pascal(self.name)

        modification = create_model(
            f"{prefix}Modification",
            action=(action_type, Field(..., description=action_help)),
            target=(target_type | None, Field(default=None, description="Target location for the modification")),
            changes=(changes_type | None, Field(default=None, description="Changes to apply")),
            new_data=(new_data_type | None, Field(default=None, description="New data for add actions")),
        )

        fields: dict[str, Any] = {
            self.entity_id_field: (str, Field(..., description=f"ID of the {self.domain} entity")),
            "action": (action_type | None, Field(default=None, description=action_help)),
            "target": (target_type | None, Field(default=None, description="Target location")),
            "changes": (changes_type | None, Field(default=None, description="Changes to apply")),
            "new_data": (new_data_type | None, Field(default=None, description="New data for add actions")),
        }
        if self.batch_supported:
            fields["batch"] = (
                list[modification] | None,
                Field(default=None, description="Array of modifications to apply in sequence"),
            )
        return create_model(f"{prefix}Parameters", **fields)

    def input_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema()

    # === Execution ===

    async def execute(self, args: Mapping[str, Any], context: ToolContext | None = None) -> ModificationResult:
        """Run one modification cycle. Never raises; fatal errors become error results."""
        context = context or ToolContext(domain=self.domain)
        return await safe_execute(lambda: self._run(dict(args), context), operation_name=self.name)

    def _modifications(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        batch = args.get("batch")
        if batch:
            if not self.batch_supported:
                raise InvalidRequestError(f"Batch operations are not supported by {self.name}")
            if not isinstance(batch, list):
                raise InvalidRequestError("batch must be an array of modifications")
            return batch

        action = args.get("action")
        if action:
            return [
                {
                    "action": action,
                    "target": args.get("target"),
                    "changes": args.get("changes"),
                    "new_data": args.get("new_data", args.get("newData")),
                }
            ]
        raise NoModificationSpecifiedError()

    async def _check_owner(self, entity: E, entity_id: str, context: ToolContext) -> None:
        if self.config.owner_of is None or context.is_admin:
            return
        user_id = get_effective_user_id(context)
        if user_id is None:
            raise UnauthorizedError(self.domain, entity_id, None)
        owner = await _maybe_await(self.config.owner_of(entity))
        if owner != user_id:
            raise UnauthorizedError(self.domain, entity_id, user_id)

    def _check_valid(self, entity: E, entity_id: str) -> None:
        if self.config.validate_entity is None:
            return
        verdict = self.config.validate_entity(entity)
        if verdict is True:
            return
        reason = verdict if isinstance(verdict, str) and verdict else "Entity validation failed"
        raise EntityValidationError(reason, entity_id)

    def _cancelled(self, stage: str, outcomes) -> ModificationResult:
        error = ModificationCancelledError(stage)
        logger.info("[%s] %s", self.name, error.message)
        return error_result(error.message, error.error_code, outcomes)

    async def _run(self, args: dict[str, Any], context: ToolContext) -> ModificationResult:
        entity_id = args.get(self.entity_id_field)
        if not isinstance(entity_id, str) or not entity_id:
            raise InvalidRequestError(f"{self.entity_id_field} is required")

        logger.info(
            "[%s] called: entity_id=%s action=%s batch=%d",
            self.name,
            entity_id,
            args.get("action"),
            len(args.get("batch") or []),
        )

        # 1. Resolve and check the entity before touching it
        entity = await self.config.resolve_entity(entity_id, context)
        if entity is None:
            raise EntityNotFoundError(self.domain, entity_id)
        await self._check_owner(entity, entity_id, context)
        self._check_valid(entity, entity_id)

        modifications = self._modifications(args)
        prior_state = copy.deepcopy(self.config.state_of(entity))
        expected_version = self.config.version_of(entity)

        # 2. Apply items in order
        report = await self.executor.execute(entity, modifications, context)
        accumulator = ResponseAccumulator(report.outcomes)
        record_item_outcomes(self.name, accumulator.success_count, accumulator.failure_count, accumulator.skipped_count)

        if report.cancelled:
            return self._cancelled("execution", accumulator.outcomes)
        if report.aborted:
            failure = report.first_failure
            return error_result(
                f"Batch failed at item {failure.index} ({failure.action}): {failure.error}",
                failure.error_code,
                accumulator.outcomes,
            )

        # 3. Final transform, then persist
        current = report.entity
        if self.config.before_save is not None:
            transformed = await _maybe_await(self.config.before_save(current, context))
            if transformed is not None:
                current = transformed

        if context.cancelled:
            return self._cancelled("persistence", accumulator.outcomes)

        try:
            saved_version = await self.config.save_entity(
                entity_id, current, context, prior_state=prior_state, expected_version=expected_version
            )
        except PlanMCPError as e:
            if not isinstance(e, PersistenceError):
                e = PersistenceError(entity_id, e.message, error_code=e.error_code)
            log_structured_error(
                category=ErrorCategory.ERROR,
                message=e.message,
                exception=e,
                operation="save_entity",
                context={"tool_name": self.name, "entity_id": entity_id},
            )
            return error_result(e.message, e.error_code, accumulator.outcomes)
        except Exception as e:
            error = PersistenceError(entity_id, str(e))
            log_structured_error(
                category=ErrorCategory.ERROR,
                message=error.message,
                exception=e,
                operation="save_entity",
                context={"tool_name": self.name, "entity_id": entity_id},
            )
            return error_result(error.message, error.error_code, accumulator.outcomes)
        logger.info("[%s] saved %s", self.name, entity_id)

        # 4. Best-effort post-save hook
        if self.config.after_save is not None:
            try:
                await _maybe_await(self.config.after_save(current, context))
            except Exception as e:
                log_structured_error(
                    category=ErrorCategory.WARNING,
                    message=f"after_save hook failed for {entity_id}: {e}",
                    exception=e,
                    operation="after_save",
                    context={"tool_name": self.name, "entity_id": entity_id},
                )

        # 5. Canonical post-commit view
        refreshed = await self.config.resolve_entity(entity_id, context)
        canonical = refreshed if refreshed is not None else current
        version = self.config.version_of(canonical)
        summary = EntitySummary(
            entity_id=entity_id,
            version=version if version is not None else (saved_version or 0),
            modifications_applied=accumulator.success_count,
            errors=accumulator.errors(),
            data=self.config.summarize(canonical) if self.config.summarize else None,
        )

        logger.info(
            "[%s] complete: %d succeeded, %d failed",
            self.name,
            accumulator.success_count,
            accumulator.failure_count,
        )
        return accumulator.to_result(summary)


def create_agentic_tool(config: AgenticToolConfig[E]) -> AgenticTool[E]:
    """Build an agentic tool; rejects configs with no actions."""
    return AgenticTool(config)


__all__ = [
    "AgenticTool",
    "AgenticToolConfig",
    "create_agentic_tool",
    "define_action",
]
