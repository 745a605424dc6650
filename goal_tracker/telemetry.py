"""
Application Insights telemetry for the scheduling service.

Job runs, reminder deliveries and rollovers are reported as custom events so
operators can see them without reading logs. Everything here is a no-op when
APPLICATIONINSIGHTS_CONNECTION_STRING is not configured.
"""

import os
import time
import logging
from contextlib import contextmanager
from typing import Dict, Optional

from applicationinsights import TelemetryClient
from applicationinsights.channel import AsynchronousQueue, AsynchronousSender, TelemetryChannel

logger = logging.getLogger(__name__)

SERVICE_NAME = "goal-tracker"

_telemetry_client: Optional[TelemetryClient] = None
_telemetry_disabled = False


class Events:
    """Custom event names emitted by the service."""
    JOB_RUN_SUCCEEDED = "goal_job_run_succeeded"
    JOB_RUN_FAILED = "goal_job_run_failed"
    REMINDER_SENT = "goal_reminder_sent"
    REMINDER_FAILED = "goal_reminder_failed"
    CYCLE_ROLLED_OVER = "goal_cycle_rolled_over"
    GOALS_DELETED = "goal_records_deleted"
    WORK_ITEM_FAILED = "goal_work_item_failed"


def instrumentation_key_from(connection_string: str) -> Optional[str]:
    """Pull InstrumentationKey out of an Application Insights connection string."""
    for part in connection_string.split(";"):
        key, _, value = part.partition("=")
        if key.strip().lower() == "instrumentationkey" and value.strip():
            return value.strip()
    return None


def get_telemetry_client() -> Optional[TelemetryClient]:
    """
    Get or create the telemetry client.

    Returns:
        TelemetryClient, or None when telemetry is not configured
    """
    global _telemetry_client, _telemetry_disabled

    if _telemetry_client is not None or _telemetry_disabled:
        return _telemetry_client

    connection_string = os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING", "")
    instrumentation_key = instrumentation_key_from(connection_string) if connection_string else None

    if not instrumentation_key:
        logger.info("Application Insights not configured - telemetry disabled")
        _telemetry_disabled = True
        return None

    sender = AsynchronousSender()
    channel = TelemetryChannel(None, AsynchronousQueue(sender))
    _telemetry_client = TelemetryClient(instrumentation_key, telemetry_channel=channel)
    _telemetry_client.context.cloud.role = SERVICE_NAME

    logger.info(f"Application Insights telemetry enabled for {SERVICE_NAME}")
    return _telemetry_client


def reset_telemetry():
    """Forget the cached client; used when configuration changes and in tests."""
    global _telemetry_client, _telemetry_disabled
    _telemetry_client = None
    _telemetry_disabled = False


def track_event(
    name: str,
    properties: Optional[Dict[str, str]] = None,
    measurements: Optional[Dict[str, float]] = None
):
    client = get_telemetry_client()
    if not client:
        return

    try:
        client.track_event(name, properties, measurements)
    except Exception as e:
        logger.error(f"Failed to track event {name}: {e}")


def track_exception(exception: BaseException, properties: Optional[Dict[str, str]] = None):
    """Send an exception to Application Insights and flush immediately."""
    client = get_telemetry_client()
    if not client:
        return

    try:
        client.track_exception(type(exception), exception, exception.__traceback__, properties)
        client.flush()
    except Exception as e:
        logger.error(f"Failed to track exception: {e}")


@contextmanager
def track_operation(operation_name: str, properties: Optional[Dict[str, str]] = None):
    """
    Track duration and outcome of a block.

    Usage:
        with track_operation("goal_reminder_job", {"run_id": run_id}):
            await job.run()
    """
    start_time = time.time()
    event_properties = dict(properties or {})
    success = False

    try:
        yield
        success = True
    except Exception as e:
        event_properties["error_type"] = type(e).__name__
        track_exception(e, event_properties)
        raise
    finally:
        event_properties["success"] = str(success)
        track_event(
            f"operation_{operation_name}",
            properties=event_properties,
            measurements={"duration_ms": (time.time() - start_time) * 1000}
        )


def flush_telemetry():
    """Flush pending telemetry, called at shutdown."""
    if _telemetry_client:
        _telemetry_client.flush()
