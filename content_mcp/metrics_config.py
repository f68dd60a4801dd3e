"""Content MCP Metrics Configuration.

Local metrics collection using OpenTelemetry with a Prometheus reader.
Metrics are off under pytest and CI unless MCP_METRICS_ENABLED says otherwise.
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

logger = logging.getLogger(__name__)

# =============================================================================
# SERVICE CONFIGURATION
# =============================================================================

SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "content-mcp")
SERVICE_VERSION = os.getenv("OTEL_SERVICE_VERSION", "0.1.0")
DEPLOYMENT_ENVIRONMENT = os.getenv("DEPLOYMENT_ENVIRONMENT", "local")


def is_test_environment() -> bool:
    """Detect if running in test environment."""
    return "PYTEST_CURRENT_TEST" in os.environ or "CI" in os.environ or "GITHUB_ACTIONS" in os.environ


# Disable metrics in test/CI environments by default
default_metrics_enabled = "false" if is_test_environment() else "true"
METRICS_ENABLED = os.getenv("MCP_METRICS_ENABLED", default_metrics_enabled).lower() == "true"

# Metrics instances
meter = None
tool_calls_counter = None
transactions_counter = None
prometheus_reader = None

_metrics_initialized = False


def get_resource() -> Resource:
    """Create OpenTelemetry resource with service information."""
    return Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.version": SERVICE_VERSION,
            "deployment.environment": DEPLOYMENT_ENVIRONMENT,
            "host.name": socket.gethostname(),
        }
    )


def initialize_metrics():
    """Initialize metrics collection with a Prometheus reader."""
    global meter, tool_calls_counter, transactions_counter, prometheus_reader

    if not METRICS_ENABLED:
        logger.debug("Telemetry disabled")
        return

    try:
        prometheus_reader = PrometheusMetricReader()
        meter_provider = MeterProvider(resource=get_resource(), metric_readers=[prometheus_reader])
        metrics.set_meter_provider(meter_provider)
        meter = metrics.get_meter(__name__)

        tool_calls_counter = meter.create_counter(
            name="mcp_tool_calls_total",
            description="Total number of MCP tool calls",
            unit="1",
        )
        transactions_counter = meter.create_counter(
            name="content_transactions_total",
            description="Total number of submitted mutation transactions",
            unit="1",
        )
        logger.debug("Metrics initialized: %s v%s (%s)", SERVICE_NAME, SERVICE_VERSION, DEPLOYMENT_ENVIRONMENT)
    except Exception as e:
        logger.warning("Metrics initialization failed: %s", e)


def is_metrics_enabled() -> bool:
    """Check if metrics collection is enabled."""
    return METRICS_ENABLED and meter is not None


def record_tool_call_start(tool_name: str, args: tuple, kwargs: dict) -> float | None:
    """Record start of tool call, return start time."""
    if not is_metrics_enabled():
        return None
    return time.time()


def _record_tool_call(tool_name: str, status: str) -> None:
    if not is_metrics_enabled() or tool_calls_counter is None:
        return
    try:
        tool_calls_counter.add(1, {"tool_name": tool_name, "status": status, "environment": DEPLOYMENT_ENVIRONMENT})
    except Exception as e:
        logger.debug("Recording tool call %s failed: %s", status, e)


def record_tool_call_success(tool_name: str, start_time: float | None, result_size: int = 0):
    """Record successful tool call."""
    _record_tool_call(tool_name, "success")


def record_tool_call_error(tool_name: str, start_time: float | None, error: Exception):
    """Record failed tool call."""
    _record_tool_call(tool_name, "error")


def record_transaction(status: str) -> None:
    """Count one submitted transaction by outcome (success, dry_run, conflict, error)."""
    if not is_metrics_enabled() or transactions_counter is None:
        return
    try:
        transactions_counter.add(1, {"status": status, "environment": DEPLOYMENT_ENVIRONMENT})
    except Exception as e:
        logger.debug("Recording transaction failed: %s", e)


def get_metrics_export() -> tuple[str, str]:
    """Export metrics in Prometheus format."""
    if not is_metrics_enabled() or not prometheus_reader:
        return "# Metrics not available\n", "text/plain"

    try:
        return generate_latest().decode("utf-8"), CONTENT_TYPE_LATEST
    except Exception as e:
        return f"# Error: {e}\n", "text/plain"


def get_metrics_summary() -> dict[str, Any]:
    """Get metrics summary for debugging."""
    if not is_metrics_enabled():
        return {"status": "disabled"}

    return {
        "status": "active",
        "service_name": SERVICE_NAME,
        "service_version": SERVICE_VERSION,
        "environment": DEPLOYMENT_ENVIRONMENT,
        "prometheus_enabled": prometheus_reader is not None,
    }


def ensure_metrics_initialized():
    """Initialize metrics when server starts."""
    global _metrics_initialized
    if _metrics_initialized:
        return

    if METRICS_ENABLED and not is_test_environment():
        initialize_metrics()
    _metrics_initialized = True


def shutdown_metrics():
    """Shutdown metrics collection."""
    if prometheus_reader:
        try:
            prometheus_reader.shutdown()
        except Exception as e:
            logger.debug("Metrics shutdown failed: %s", e)
