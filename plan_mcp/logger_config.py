import functools
import inspect
import json
import logging
import traceback
from datetime import datetime
from datetime import timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Any

from .config import get_settings
from .metrics_config import record_tool_call_error
from .metrics_config import record_tool_call_start
from .metrics_config import record_tool_call_success

_settings = get_settings()
_log_dir = _settings.log_dir_path

# Attributes present on every LogRecord; anything else came in through ``extra``.
_STANDARD_RECORD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class ErrorCategory(Enum):
    """Severity categories for structured error logging."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


_CATEGORY_LEVELS = {
    ErrorCategory.CRITICAL: logging.CRITICAL,
    ErrorCategory.ERROR: logging.ERROR,
    ErrorCategory.WARNING: logging.WARNING,
    ErrorCategory.INFO: logging.INFO,
}


class StructuredLogFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


# --- Logging Setup ---
mcp_call_logger = logging.getLogger("mcp_call_logger")
mcp_call_logger.setLevel(_settings.log_level)

# maxBytes: 10MB per file, backupCount: 5 files (total ~50MB)
file_handler = RotatingFileHandler(_log_dir / "mcp_calls.log", maxBytes=10 * 1024 * 1024, backupCount=5)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
mcp_call_logger.addHandler(file_handler)
mcp_call_logger.propagate = False

error_logger = logging.getLogger("error_logger")
error_logger.setLevel(_settings.log_level)
error_file_handler = RotatingFileHandler(_log_dir / "errors.log", maxBytes=10 * 1024 * 1024, backupCount=5)
if _settings.structured_logging:
    error_file_handler.setFormatter(StructuredLogFormatter())
else:
    error_file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
error_logger.addHandler(error_file_handler)
error_logger.propagate = False


def log_structured_error(
    category: ErrorCategory,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
    operation: str | None = None,
    **extra_fields: Any,
) -> None:
    """Log an error with its category, operation and context as structured fields."""
    extra: dict[str, Any] = {"error_category": category.value}
    if operation:
        extra["operation"] = operation
    if context:
        extra.update(context)
    extra.update(extra_fields)
    # LogRecord reserves these names
    for reserved in ("message", "asctime", "args", "msg"):
        if reserved in extra:
            extra[f"ctx_{reserved}"] = extra.pop(reserved)

    error_logger.log(
        _CATEGORY_LEVELS[category],
        message,
        exc_info=exception is not None,
        extra=extra,
    )


def safe_operation(
    operation_name: str,
    operation_func,
    *args,
    error_category: ErrorCategory = ErrorCategory.ERROR,
    context: dict[str, Any] | None = None,
    **kwargs,
) -> tuple[bool, Any, Exception | None]:
    """Run ``operation_func`` and return ``(success, result, error)`` instead of raising."""
    try:
        return True, operation_func(*args, **kwargs), None
    except Exception as e:
        log_structured_error(
            category=error_category,
            message=f"Operation '{operation_name}' failed: {e}",
            exception=e,
            context=context,
            operation=operation_name,
        )
        return False, None, e


def _render(value: Any) -> str:
    if hasattr(value, "model_dump_json"):
        return value.model_dump_json(indent=None, exclude_none=True)
    if isinstance(value, list) and value and hasattr(value[0], "model_dump_json"):
        return "[" + ", ".join(_render(item) for item in value) + "]"
    return repr(value)


def _describe_call(args: tuple, kwargs: dict) -> str:
    try:
        logged_args = [_render(arg) for arg in args]
        logged_kwargs = {k: _render(v) for k, v in kwargs.items()}
        return f"args={logged_args}, kwargs={logged_kwargs}"
    except Exception as e:
        return f"args/kwargs logging error: {e}"


def _start(func_name: str, args: tuple, kwargs: dict) -> float | None:
    start_time = None
    try:
        start_time = record_tool_call_start(func_name, args, kwargs)
    except Exception as e:
        mcp_call_logger.warning(f"Metrics recording failed for {func_name}: {e}")
    mcp_call_logger.info(f"Calling tool: {func_name} with {_describe_call(args, kwargs)}")
    return start_time


def _finish(func_name: str, start_time: float | None, result: Any) -> None:
    try:
        result_str = _render(result)
    except Exception as e:
        result_str = f"Result logging error: {e}"

    try:
        record_tool_call_success(func_name, start_time, len(result_str))
    except Exception as e:
        mcp_call_logger.warning(f"Metrics success recording failed for {func_name}: {e}")

    mcp_call_logger.info(f"Tool {func_name} returned: {result_str}")


def _fail(func_name: str, start_time: float | None, error: Exception) -> None:
    try:
        record_tool_call_error(func_name, start_time, error)
    except Exception as metrics_error:
        mcp_call_logger.warning(f"Metrics error recording failed for {func_name}: {metrics_error}")

    mcp_call_logger.error(f"Tool {func_name} raised exception: {error}", exc_info=True)
    log_structured_error(
        category=ErrorCategory.ERROR,
        message=f"Tool {func_name} raised {type(error).__name__}: {error}",
        exception=error,
        operation="tool_execution",
        function=func_name,
    )


# --- Decorator for Logging MCP Calls with Metrics ---
def log_mcp_call(func):
    """Log arguments, result and failures of a tool callable (sync or async)."""
    func_name = getattr(func, "__name__", "unknown_function")

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = _start(func_name, args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _fail(func_name, start_time, e)
                raise
            _finish(func_name, start_time, result)
            return result

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = _start(func_name, args, kwargs)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _fail(func_name, start_time, e)
            raise
        _finish(func_name, start_time, result)
        return result

    return wrapper
