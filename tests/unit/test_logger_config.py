"""
Unit tests for logger_config module.

Covers the JSON formatter, structured error logging, the safe_operation
wrapper and the log_mcp_call decorator for sync and async tools.
"""

import json
import logging
from io import StringIO

import pytest

from plan_mcp.config import get_settings
from plan_mcp.logger_config import ErrorCategory
from plan_mcp.logger_config import StructuredLogFormatter
from plan_mcp.logger_config import error_logger
from plan_mcp.logger_config import log_mcp_call
from plan_mcp.logger_config import log_structured_error
from plan_mcp.logger_config import mcp_call_logger
from plan_mcp.logger_config import safe_operation


def _record(msg="Test message", level=logging.ERROR, exc_info=None):
    return logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestStructuredLogFormatter:
    def test_basic_entry(self):
        log_data = json.loads(StructuredLogFormatter().format(_record()))

        assert log_data["level"] == "ERROR"
        assert log_data["logger"] == "test_logger"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data

    def test_exception_block(self):
        try:
            raise ValueError("Test exception")
        except ValueError:
            import sys

            record = _record("Error occurred", exc_info=sys.exc_info())

        log_data = json.loads(StructuredLogFormatter().format(record))

        assert log_data["exception"]["type"] == "ValueError"
        assert log_data["exception"]["message"] == "Test exception"
        assert isinstance(log_data["exception"]["traceback"], list)

    def test_extra_fields(self):
        record = _record("Operation completed", level=logging.INFO)
        record.operation = "commit"
        record.entity_id = "plan_1"

        log_data = json.loads(StructuredLogFormatter().format(record))

        assert log_data["operation"] == "commit"
        assert log_data["entity_id"] == "plan_1"


class TestLogStructuredError:
    def test_basic(self, mocker):
        mock_logger = mocker.patch("plan_mcp.logger_config.error_logger")
        log_structured_error(category=ErrorCategory.ERROR, message="Test error message", operation="save")

        mock_logger.log.assert_called_once()
        call_args = mock_logger.log.call_args
        assert call_args[0][0] == logging.ERROR
        assert call_args[0][1] == "Test error message"
        extra = call_args[1]["extra"]
        assert extra["error_category"] == "ERROR"
        assert extra["operation"] == "save"
        assert call_args[1]["exc_info"] is False

    def test_with_exception_and_context(self, mocker):
        mock_logger = mocker.patch("plan_mcp.logger_config.error_logger")
        log_structured_error(
            category=ErrorCategory.WARNING,
            message="Handler failed",
            exception=ValueError("bad weight"),
            context={"action": "update_item", "item_index": 2},
        )

        call_args = mock_logger.log.call_args
        assert call_args[0][0] == logging.WARNING
        assert call_args[1]["exc_info"] is True
        assert call_args[1]["extra"]["action"] == "update_item"
        assert call_args[1]["extra"]["item_index"] == 2

    def test_reserved_keys_are_renamed(self, mocker):
        mock_logger = mocker.patch("plan_mcp.logger_config.error_logger")
        log_structured_error(category=ErrorCategory.INFO, message="x", context={"message": "inner"})

        extra = mock_logger.log.call_args[1]["extra"]
        assert "message" not in extra
        assert extra["ctx_message"] == "inner"


class TestSafeOperation:
    def test_success(self):
        success, result, error = safe_operation("addition", lambda x, y: x + y, 5, 3)
        assert (success, result, error) == (True, 8, None)

    def test_failure(self, mocker):
        mock_log_error = mocker.patch("plan_mcp.logger_config.log_structured_error")

        def failing_function():
            raise RuntimeError("Operation failed")

        success, result, error = safe_operation(
            "failing_operation", failing_function, error_category=ErrorCategory.CRITICAL
        )

        assert success is False
        assert result is None
        assert isinstance(error, RuntimeError)
        assert mock_log_error.call_args[1]["category"] == ErrorCategory.CRITICAL
        assert mock_log_error.call_args[1]["operation"] == "failing_operation"


class TestLogMCPCallDecorator:
    def test_sync_success(self, mocker):
        mock_logger = mocker.patch("plan_mcp.logger_config.mcp_call_logger")

        @log_mcp_call
        def tool(arg1, arg2="default"):
            return {"result": arg1 + arg2}

        assert tool("hello", arg2="world") == {"result": "helloworld"}
        assert mock_logger.info.call_count == 2

    def test_sync_exception(self, mocker):
        mock_logger = mocker.patch("plan_mcp.logger_config.mcp_call_logger")
        mock_log_error = mocker.patch("plan_mcp.logger_config.log_structured_error")

        @log_mcp_call
        def failing_function():
            raise LookupError("missing")

        with pytest.raises(LookupError):
            failing_function()

        mock_logger.error.assert_called_once()
        call_args = mock_log_error.call_args
        assert call_args[1]["category"] == ErrorCategory.ERROR
        assert call_args[1]["operation"] == "tool_execution"
        assert call_args[1]["function"] == "failing_function"

    @pytest.mark.asyncio
    async def test_async_success(self, mocker):
        mock_logger = mocker.patch("plan_mcp.logger_config.mcp_call_logger")

        @log_mcp_call
        async def async_tool(plan_id):
            return {"plan_id": plan_id}

        assert await async_tool(plan_id="plan_1") == {"plan_id": "plan_1"}
        assert mock_logger.info.call_count == 2

    @pytest.mark.asyncio
    async def test_async_exception(self, mocker):
        mocker.patch("plan_mcp.logger_config.mcp_call_logger")
        mock_log_error = mocker.patch("plan_mcp.logger_config.log_structured_error")

        @log_mcp_call
        async def async_tool():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await async_tool()

        assert mock_log_error.call_args[1]["function"] == "async_tool"

    def test_wraps_preserves_name(self):
        @log_mcp_call
        def plan_apply_modification():
            return None

        assert plan_apply_modification.__name__ == "plan_apply_modification"


class TestActualLogger:
    def test_error_logger_configuration(self):
        assert error_logger.name == "error_logger"
        assert error_logger.level == logging.getLevelName(get_settings().log_level)
        assert mcp_call_logger.level == error_logger.level
        assert any(isinstance(h.formatter, StructuredLogFormatter) for h in error_logger.handlers)

    def test_structured_output(self):
        log_stream = StringIO()
        handler = logging.StreamHandler(log_stream)
        handler.setFormatter(StructuredLogFormatter())
        test_logger = logging.getLogger("test_structured")
        test_logger.addHandler(handler)
        test_logger.setLevel(logging.INFO)

        try:
            raise ValueError("Test exception for logging")
        except ValueError:
            test_logger.error(
                "Test structured log entry",
                exc_info=True,
                extra={"error_category": "ERROR", "operation": "commit"},
            )
        test_logger.removeHandler(handler)

        log_data = json.loads(log_stream.getvalue().strip())
        assert log_data["message"] == "Test structured log entry"
        assert log_data["operation"] == "commit"
        assert log_data["exception"]["type"] == "ValueError"
