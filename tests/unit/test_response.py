"""Unit tests for outcome aggregation and result helpers."""

import pytest

from plan_mcp.batch import ItemOutcome
from plan_mcp.exceptions import EntityNotFoundError
from plan_mcp.exceptions import UnknownActionError
from plan_mcp.models import EntitySummary
from plan_mcp.response import ResponseAccumulator
from plan_mcp.response import error_result
from plan_mcp.response import safe_execute
from plan_mcp.response import success_result


@pytest.fixture
def outcomes():
    return [
        ItemOutcome.success(0, "update_item"),
        ItemOutcome.failure(1, "teleport", UnknownActionError("teleport")),
        ItemOutcome.success(2, "rename_day"),
        ItemOutcome.skipped(3, "remove_item"),
    ]


class TestResponseAccumulator:
    def test_counts(self, outcomes):
        accumulator = ResponseAccumulator(outcomes)

        assert accumulator.success_count == 2
        assert accumulator.failure_count == 1
        assert accumulator.skipped_count == 1
        assert accumulator.made_progress

    def test_message_joins_rendered_lines(self, outcomes):
        accumulator = ResponseAccumulator(outcomes)

        assert accumulator.message() == (
            "✅ update_item completed\n❌ Unknown action: teleport\n✅ rename_day completed\n⏭️ remove_item skipped"
        )
        assert accumulator.errors() == ["❌ Unknown action: teleport"]

    def test_no_progress_when_everything_failed(self):
        accumulator = ResponseAccumulator()
        accumulator.add(ItemOutcome.failure(0, "x", UnknownActionError("x")))

        assert not accumulator.made_progress

    def test_to_result(self, outcomes):
        summary = EntitySummary(entity_id="plan_1", version=2, modifications_applied=2)
        result = ResponseAccumulator(outcomes).to_result(summary)

        assert result.success is True
        assert result.affected_count == 2
        assert result.updated.version == 2
        assert len(result.outcomes) == 4


class TestResultHelpers:
    def test_success_result(self):
        result = success_result("Done", {"id": "x"}, 3)
        assert result.success
        assert result.updated == {"id": "x"}
        assert result.affected_count == 3

    def test_error_result(self):
        result = error_result("Boom", "SOME_CODE")
        assert not result.success
        assert result.message == "Modification failed"
        assert result.error == "Boom"
        assert result.error_code == "SOME_CODE"


class TestSafeExecute:
    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        async def operation():
            return success_result("ok")

        result = await safe_execute(operation)
        assert result.message == "ok"

    @pytest.mark.asyncio
    async def test_domain_error_becomes_error_result(self):
        async def operation():
            raise EntityNotFoundError("plan", "missing")

        result = await safe_execute(operation)
        assert not result.success
        assert result.error == "plan entity with ID missing not found"
        assert result.error_code == "ENTITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged(self, mocker):
        mock_log = mocker.patch("plan_mcp.response.log_structured_error")

        async def operation():
            raise RuntimeError("disk on fire")

        result = await safe_execute(operation, "my_tool")

        assert result.error == "disk on fire"
        assert result.error_code == "UNKNOWN_ERROR"
        assert mock_log.call_args.kwargs["operation"] == "my_tool"
