"""
Prometheus metrics for the pipeline bridge.

An invocation is a short-lived process, so the metrics live on a dedicated
registry and are pushed to a Pushgateway once the run is over, when one is
configured.
"""

from prometheus_client import CollectorRegistry, Counter, Histogram, push_to_gateway
import time

from ado_bridge import logger


registry = CollectorRegistry()

# Pipeline triggering metrics
pipelines_triggered_total = Counter(
    'ado_bridge_pipelines_triggered_total',
    'Total number of Azure DevOps pipeline runs triggered',
    ['pipeline_type'],  # pipeline_type = yaml|designer
    registry=registry,
)

pipeline_trigger_errors_total = Counter(
    'ado_bridge_pipeline_trigger_errors_total',
    'Total number of errors while triggering or following a pipeline run',
    ['pipeline_type', 'error_type'],
    registry=registry,
)

pipeline_run_duration_seconds = Histogram(
    'ado_bridge_pipeline_run_duration_seconds',
    'Time from resolving the pipeline until the run reached a terminal status',
    ['pipeline_type'],
    buckets=(10, 30, 60, 120, 300, 600, 1200, 1800, 3600, 7200, float("inf")),
    registry=registry,
)

pipeline_runs_completed_total = Counter(
    'ado_bridge_pipeline_runs_completed_total',
    'Total number of pipeline runs followed to a terminal status',
    ['pipeline_type', 'outcome'],  # outcome = succeeded|failed|canceled
    registry=registry,
)

run_status_polls_total = Counter(
    'ado_bridge_run_status_polls_total',
    'Total number of run status polls',
    ['pipeline_type'],
    registry=registry,
)

# Azure DevOps API interaction metrics
azure_api_calls_total = Counter(
    'ado_bridge_azure_api_calls_total',
    'Total number of Azure DevOps API calls',
    ['endpoint', 'method', 'status_code'],
    registry=registry,
)

azure_api_call_duration_seconds = Histogram(
    'ado_bridge_azure_api_call_duration_seconds',
    'Duration of Azure DevOps API calls',
    ['endpoint', 'method'],
    registry=registry,
)

azure_api_call_errors_total = Counter(
    'ado_bridge_azure_api_call_errors_total',
    'Total number of Azure DevOps API calls that raised',
    ['endpoint', 'method', 'error_type'],
    registry=registry,
)


class MetricsContext:
    """Context manager for timing operations and handling errors with metrics."""

    def __init__(self, histogram, error_counter, labels=None, error_labels=None):
        self.histogram = histogram
        self.error_counter = error_counter
        self.labels = labels or []
        self.error_labels = error_labels or []
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            duration = time.time() - self.start_time
            self.histogram.labels(*self.labels).observe(duration)

        if exc_type is not None:
            error_type = exc_type.__name__
            self.error_counter.labels(*self.error_labels, error_type).inc()

        return False  # Don't suppress exceptions


def track_pipeline_run(pipeline_type: str):
    """Context manager for tracking a triggered pipeline run."""
    return MetricsContext(
        pipeline_run_duration_seconds,
        pipeline_trigger_errors_total,
        labels=[pipeline_type],
        error_labels=[pipeline_type],
    )


def track_azure_api_call(endpoint: str, method: str):
    """Context manager for tracking Azure DevOps API call metrics."""
    return MetricsContext(
        azure_api_call_duration_seconds,
        azure_api_call_errors_total,
        labels=[endpoint, method],
        error_labels=[endpoint, method],
    )


def push_metrics(gateway_url: str | None, job: str = "ado_bridge"):
    if not gateway_url:
        return
    logger.debug("Pushing metrics to %s", gateway_url)
    try:
        push_to_gateway(gateway_url, job=job, registry=registry)
    except OSError as e:
        logger.warning("Could not push metrics to %s: %s", gateway_url, e)
