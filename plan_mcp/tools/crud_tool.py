"""CRUD tools with fail-fast batches.

Unlike agentic tools, a CRUD batch stops at the first failed operation and
reports it; the remaining operations are recorded as skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import Field
from pydantic import create_model

from ..batch import ItemOutcome
from ..context import ToolContext
from ..exceptions import PlanMCPError
from ..logger_config import ErrorCategory
from ..logger_config import log_structured_error
from ..models import ModificationResult
from ..response import error_result
from ..response import success_result

logger = logging.getLogger(__name__)

CrudOperation = Literal["create", "read", "update", "delete"]
CRUD_OPERATIONS: tuple[str, ...] = ("create", "read", "update", "delete")

CrudHandler = Callable[[dict[str, Any], ToolContext], Awaitable[ModificationResult]]


@dataclass
class CrudToolConfig:
    name: str
    domain: str
    description: str
    handlers: Mapping[str, CrudHandler]
    operations: tuple[str, ...] = CRUD_OPERATIONS
    batch_supported: bool = False
    common_params: dict[str, tuple[Any, Any]] = field(default_factory=dict)


class CrudTool:
    """A built CRUD tool. Construct through ``create_crud_tool``."""

    def __init__(self, config: CrudToolConfig):
        unknown = [op for op in config.operations if op not in CRUD_OPERATIONS]
        if unknown:
            raise ValueError(f"Unsupported CRUD operations: {', '.join(unknown)}")
        missing = [op for op in config.operations if op not in config.handlers]
        if missing:
            raise ValueError(f"Missing handlers for operations: {', '.join(missing)}")

        self.config = config
        self.name = config.name
        self.domain = config.domain
        self.operations = tuple(config.operations)
        self.batch_supported = config.batch_supported
        self.handlers = {op: config.handlers[op] for op in self.operations}
        suffix = ", batch" if self.batch_supported else ""
        self.description = f"{config.description}\n\nOperations: {', '.join(self.operations)}{suffix}"
        self.parameters = self._build_parameters()

    def _build_parameters(self) -> type[BaseModel]:
        operation_type = Literal[self.operations]
        operation_help = f"Operation: {', '.join(self.operations)}"
        fields: dict[str, Any] = {
            "operation": (operation_type | None, Field(default=None, description=operation_help)),
            "target": (dict[str, Any] | None, Field(default=None, description="Target entity identifiers")),
            "data": (dict[str, Any] | None, Field(default=None, description="Data for the operation")),
            **self.config.common_params,
        }
        if self.batch_supported:
            item = create_model(
                f"{self.name.title().replace('_', '')}BatchItem",
                operation=(operation_type, ...),
                target=(dict[str, Any] | None, None),
                data=(dict[str, Any] | None, None),
            )
            fields["batch"] = (list[item] | None, Field(default=None, description="Batch operations"))
        return create_model(f"{self.name.title().replace('_', '')}Parameters", **fields)

    def input_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema()

    async def execute(self, args: Mapping[str, Any], context: ToolContext | None = None) -> ModificationResult:
        context = context or ToolContext(domain=self.domain)
        args = dict(args)
        batch = args.get("batch")
        if batch:
            return await self._execute_batch(batch, context)

        operation = args.get("operation")
        handler = self.handlers.get(operation)
        if handler is None:
            return error_result(f"Unknown operation: {operation}", "UNKNOWN_OPERATION")

        try:
            return await handler(args, context)
        except PlanMCPError as e:
            return error_result(e.message, e.error_code)
        except Exception as e:
            log_structured_error(
                category=ErrorCategory.ERROR,
                message=f"{self.name} {operation} failed: {e}",
                exception=e,
                operation=f"{self.name}.{operation}",
            )
            return error_result(str(e), "HANDLER_EXECUTION_FAILED")

    async def _execute_batch(self, batch: list[dict[str, Any]], context: ToolContext) -> ModificationResult:
        if not self.batch_supported:
            return error_result("Batch operations not supported for this domain", "BATCH_NOT_SUPPORTED")

        outcomes: list[ItemOutcome] = []
        messages: list[str] = []
        for index, item in enumerate(batch):
            operation = item.get("operation") if isinstance(item, dict) else None
            handler = self.handlers.get(operation)
            if handler is None:
                outcomes.append(
                    ItemOutcome(
                        index=index,
                        action=str(operation),
                        status="failure",
                        error_code="UNKNOWN_OPERATION",
                        error=f"Unknown operation: {operation}",
                    )
                )
                outcomes.extend(self._skipped(batch, index + 1))
                return error_result(f"Unknown operation in batch: {operation}", "UNKNOWN_OPERATION", outcomes)

            try:
                result = await handler({**(item.get("target") or {}), **(item.get("data") or {})}, context)
            except Exception as e:
                result = error_result(str(e), getattr(e, "error_code", "HANDLER_EXECUTION_FAILED"))

            if not result.success:
                outcomes.append(
                    ItemOutcome(
                        index=index,
                        action=operation,
                        status="failure",
                        error_code=result.error_code,
                        error=f"{operation} failed: {result.error}",
                    )
                )
                outcomes.extend(self._skipped(batch, index + 1))
                logger.info("[%s] batch stopped at item %d (%s)", self.name, index, operation)
                return error_result(
                    f"Batch failed at operation {operation}: {result.error}",
                    result.error_code,
                    outcomes,
                )

            outcomes.append(ItemOutcome.success(index, operation))
            messages.append(result.message)

        response = success_result(f"Batch completed: {len(batch)} operations", {"results": messages}, len(batch))
        response.outcomes = outcomes
        return response

    @staticmethod
    def _skipped(batch: list[Any], start: int) -> list[ItemOutcome]:
        return [
            ItemOutcome.skipped(i, str(batch[i].get("operation") if isinstance(batch[i], dict) else None))
            for i in range(start, len(batch))
        ]


def create_crud_tool(config: CrudToolConfig) -> CrudTool:
    return CrudTool(config)
