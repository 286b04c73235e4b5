"""Plan MCP Metrics Configuration.

Local-only metrics collection using OpenTelemetry with a Prometheus reader.
Metrics are disabled under pytest/CI and whenever ``enable_metrics`` is off.
"""

from __future__ import annotations

import logging
import os
import socket
import time
from typing import Any

from opentelemetry import metrics
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST
from prometheus_client import generate_latest

from .config import get_settings

# --- Service identity ---

SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "plan-mcp")
SERVICE_VERSION = os.getenv("OTEL_SERVICE_VERSION", "1.0.0")
DEPLOYMENT_ENVIRONMENT = os.getenv("DEPLOYMENT_ENVIRONMENT", "local")

logger = logging.getLogger(__name__)

# Instruments, created by initialize_metrics()
meter = None
tool_calls_counter = None
item_outcomes_counter = None
prometheus_reader = None

# In-flight calls keyed by "<tool>_<start time>"
_active_operations: dict[str, float] = {}
_metrics_initialized = False


def get_resource() -> Resource:
    """Resource attributes identifying this process."""
    return Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.version": SERVICE_VERSION,
            "deployment.environment": DEPLOYMENT_ENVIRONMENT,
            "host.name": socket.gethostname(),
        }
    )


def initialize_metrics():
    """Initialize local metrics collection with a Prometheus reader."""
    global meter, tool_calls_counter, item_outcomes_counter, prometheus_reader

    try:
        prometheus_reader = PrometheusMetricReader()
        meter_provider = MeterProvider(resource=get_resource(), metric_readers=[prometheus_reader])
        metrics.set_meter_provider(meter_provider)
        meter = metrics.get_meter(__name__)

        tool_calls_counter = meter.create_counter(
            name="plan_mcp_tool_calls_total",
            description="Total number of modification tool calls",
            unit="1",
        )
        item_outcomes_counter = meter.create_counter(
            name="plan_mcp_modification_items_total",
            description="Modification items processed, by outcome",
            unit="1",
        )
    except Exception as e:
        logger.debug("Metrics initialization failed: %s", e)


def is_metrics_enabled() -> bool:
    """Check if metrics collection is enabled and initialized."""
    return meter is not None


def record_tool_call_start(tool_name: str, args: tuple, kwargs: dict) -> float | None:
    """Track an in-flight call; returns its start time, or None when metrics are off."""
    if not is_metrics_enabled():
        return None

    start_time = time.time()
    _active_operations[f"{tool_name}_{start_time}"] = start_time
    return start_time


def _record_tool_call(tool_name: str, start_time: float | None, status: str):
    if not is_metrics_enabled():
        return
    try:
        if tool_calls_counter:
            tool_calls_counter.add(
                1, {"tool_name": tool_name, "status": status, "environment": DEPLOYMENT_ENVIRONMENT}
            )
        if start_time:
            _active_operations.pop(f"{tool_name}_{start_time}", None)
    except Exception as e:
        logger.debug("Recording %s for %s failed: %s", status, tool_name, e)


def record_tool_call_success(tool_name: str, start_time: float | None, result_size: int = 0):
    """Count a tool call that returned normally."""
    _record_tool_call(tool_name, start_time, "success")


def record_tool_call_error(tool_name: str, start_time: float | None, error: Exception):
    """Count a tool call that raised."""
    _record_tool_call(tool_name, start_time, "error")


def record_item_outcomes(tool_name: str, succeeded: int, failed: int, skipped: int = 0):
    """Record per-item outcome counts for one modification cycle."""
    if not is_metrics_enabled() or item_outcomes_counter is None:
        return
    try:
        for outcome, count in (("success", succeeded), ("failure", failed), ("skipped", skipped)):
            if count:
                item_outcomes_counter.add(count, {"tool_name": tool_name, "outcome": outcome})
    except Exception as e:
        logger.debug("Recording item outcomes for %s failed: %s", tool_name, e)


def get_metrics_export() -> tuple[str, str]:
    """Return ``(body, content_type)`` for a Prometheus scrape."""
    if not is_metrics_enabled() or not prometheus_reader:
        return "# Metrics not available\n", "text/plain"

    try:
        return generate_latest().decode("utf-8"), CONTENT_TYPE_LATEST
    except Exception as e:
        return f"# Error: {e}\n", "text/plain"


def get_metrics_summary() -> dict[str, Any]:
    """Small status dict for diagnostics."""
    if not is_metrics_enabled():
        return {"status": "disabled"}

    return {
        "status": "active",
        "service_name": SERVICE_NAME,
        "service_version": SERVICE_VERSION,
        "environment": DEPLOYMENT_ENVIRONMENT,
        "active_operations": len(_active_operations),
        "prometheus_enabled": prometheus_reader is not None,
    }


def ensure_metrics_initialized():
    """Initialize metrics once, unless disabled by settings or test environment."""
    global _metrics_initialized
    if _metrics_initialized:
        return

    if get_settings().metrics_active:
        initialize_metrics()
    _metrics_initialized = True


def shutdown_metrics():
    """Stop the Prometheus reader, if one was started."""
    global prometheus_reader
    if prometheus_reader:
        try:
            prometheus_reader.shutdown()
        except Exception as e:
            logger.debug("Prometheus reader shutdown failed: %s", e)
        prometheus_reader = None
