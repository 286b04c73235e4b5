"""Unit tests for exposing tools on a FastMCP server."""

import pytest
from mcp.server.fastmcp import FastMCP

from plan_mcp.context import ToolContext
from plan_mcp.plans import create_plan_tool
from plan_mcp.response import success_result
from plan_mcp.tools import CrudToolConfig
from plan_mcp.tools import create_crud_tool
from plan_mcp.tools import register_agentic_tool
from plan_mcp.tools import register_crud_tool


@pytest.fixture
def mcp_server():
    return FastMCP("plan-mcp-test")


class TestAgenticRegistration:
    @pytest.mark.asyncio
    async def test_tool_is_listed_with_loose_schema(self, mcp_server, seeded_plan_store):
        register_agentic_tool(mcp_server, create_plan_tool(seeded_plan_store))

        tools = {t.name: t for t in await mcp_server.list_tools()}
        schema = tools["plan_apply_modification"].inputSchema

        assert schema["required"] == ["plan_id"]
        assert {"action", "target", "changes", "new_data", "batch"} <= set(schema["properties"])
        assert "Supported Actions" in tools["plan_apply_modification"].description

    @pytest.mark.asyncio
    async def test_registered_function_returns_json(self, mcp_server, seeded_plan_store):
        fn = register_agentic_tool(
            mcp_server,
            create_plan_tool(seeded_plan_store),
            context_factory=lambda: ToolContext(user_id="user_1"),
        )

        payload = await fn(plan_id="plan_1", action="rename_day", target={"day_index": 0}, changes={"name": "Chest"})

        assert payload["success"] is True
        assert payload["updated"]["version"] == 2
        assert payload["outcomes"][0]["status"] == "success"
        assert "error" not in payload

    @pytest.mark.asyncio
    async def test_missing_plan_is_reported_not_raised(self, mcp_server, seeded_plan_store):
        fn = register_agentic_tool(mcp_server, create_plan_tool(seeded_plan_store))

        payload = await fn(plan_id="missing", action="rename_day")

        assert payload["success"] is False
        assert payload["error_code"] == "ENTITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_default_context_cannot_edit_an_owned_plan(self, mcp_server, seeded_plan_store):
        fn = register_agentic_tool(mcp_server, create_plan_tool(seeded_plan_store))

        payload = await fn(plan_id="plan_1", action="update_plan", changes={"name": "Hijacked"})

        assert payload["success"] is False
        assert payload["error_code"] == "UNAUTHORIZED"
        plan = await seeded_plan_store.resolve_entity("plan_1")
        assert plan.name == "Strength Block"
        assert plan.version == 1


class TestCrudRegistration:
    @pytest.mark.asyncio
    async def test_crud_tool_is_listed(self, mcp_server):
        async def read(args, context):
            return success_result(f"read {args.get('target')}")

        tool = create_crud_tool(
            CrudToolConfig(
                name="note_manage",
                domain="note",
                description="Manage notes",
                handlers={"read": read},
                operations=("read",),
                common_params={"note_id": (str, None)},
            )
        )
        fn = register_crud_tool(mcp_server, tool)

        tools = {t.name: t for t in await mcp_server.list_tools()}
        assert {"operation", "target", "data", "note_id"} <= set(tools["note_manage"].inputSchema["properties"])

        payload = await fn(operation="read", target={"id": "n1"})
        assert payload["message"] == "read {'id': 'n1'}"
