"""Expose agentic and CRUD tools on a FastMCP server."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from ..context import ToolContext
from ..logger_config import log_mcp_call
from ..metrics_config import ensure_metrics_initialized
from .agentic_tool import AgenticTool
from .crud_tool import CrudTool

ContextFactory = Callable[[], ToolContext]


def _keyword(name: str, annotation: Any, required: bool = False) -> inspect.Parameter:
    return inspect.Parameter(
        name,
        inspect.Parameter.KEYWORD_ONLY,
        default=inspect.Parameter.empty if required else None,
        annotation=annotation,
    )


def _register(mcp_server, name: str, description: str, parameters: list[inspect.Parameter], run) -> Callable:
    async def tool_fn(**kwargs: Any) -> dict[str, Any]:
        arguments = {key: value for key, value in kwargs.items() if value is not None}
        result = await run(arguments)
        return result.model_dump(mode="json", exclude_none=True)

    tool_fn.__name__ = name
    tool_fn.__doc__ = description
    tool_fn = log_mcp_call(tool_fn)
    tool_fn.__signature__ = inspect.Signature(parameters, return_annotation=dict[str, Any])

    ensure_metrics_initialized()
    mcp_server.add_tool(tool_fn, name=name, description=description)
    return tool_fn


def register_agentic_tool(mcp_server, tool: AgenticTool, context_factory: ContextFactory | None = None) -> Callable:
    """Add an agentic tool to ``mcp_server``.

    Arguments are accepted loosely (plain objects) so that a bad item inside
    a batch is reported as a per-item failure rather than rejected up front.
    Without a ``context_factory`` calls carry no identity, so tools with an
    ownership check reject them as unauthorized.
    """
    parameters = [
        _keyword(tool.entity_id_field, str, required=True),
        _keyword("action", str | None),
        _keyword("target", dict[str, Any] | None),
        _keyword("changes", dict[str, Any] | None),
        _keyword("new_data", dict[str, Any] | None),
    ]
    if tool.batch_supported:
        parameters.append(_keyword("batch", list[dict[str, Any]] | None))

    async def run(arguments: dict[str, Any]):
        context = context_factory() if context_factory else ToolContext(domain=tool.domain)
        return await tool.execute(arguments, context)

    return _register(mcp_server, tool.name, tool.description, parameters, run)


def register_crud_tool(mcp_server, tool: CrudTool, context_factory: ContextFactory | None = None) -> Callable:
    """Add a CRUD tool to ``mcp_server``."""
    parameters = [
        _keyword("operation", str | None),
        _keyword("target", dict[str, Any] | None),
        _keyword("data", dict[str, Any] | None),
    ]
    for param_name, (annotation, _field) in tool.config.common_params.items():
        parameters.append(_keyword(param_name, annotation | None))
    if tool.batch_supported:
        parameters.append(_keyword("batch", list[dict[str, Any]] | None))

    async def run(arguments: dict[str, Any]):
        context = context_factory() if context_factory else ToolContext(domain=tool.domain)
        return await tool.execute(arguments, context)

    return _register(mcp_server, tool.name, tool.description, parameters, run)
