"""
Prometheus metrics for observability.

Exposes metrics for:
- HTTP request latency and counts
- Clustering pipeline performance
- Skipped jobs and anchor matches
"""

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from job_routing.core.config import settings

# ============================================================
# HTTP Metrics
# ============================================================

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"],
)


# ============================================================
# Engine Metrics
# ============================================================

CLUSTERING_DURATION = Histogram(
    "clustering_duration_seconds",
    "Clustering pipeline execution time",
    ["problem_size"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

CLUSTERING_RUNS_TOTAL = Counter(
    "clustering_runs_total",
    "Total clustering pipeline runs",
    ["status"],
)

CLUSTERS_PRODUCED = Histogram(
    "clusters_produced",
    "Number of clusters per clustering run",
    buckets=[0, 1, 2, 5, 10, 20, 50, 100],
)

JOBS_SKIPPED_TOTAL = Counter(
    "jobs_skipped_total",
    "Jobs excluded from a computation because of an invalid location",
    ["operation"],
)

ANCHOR_CANDIDATES = Histogram(
    "anchor_candidates",
    "Number of candidates returned per anchor match",
    buckets=[0, 1, 2, 3, 5, 10, 20],
)


# ============================================================
# Application Info
# ============================================================

APP_INFO = Info(
    "app",
    "Application information",
)
APP_INFO.info(
    {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }
)


# ============================================================
# Middleware
# ============================================================


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics.

    Tracks:
    - Request duration
    - Request count by endpoint and status
    - In-progress requests
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == settings.METRICS_PATH:
            return await call_next(request)

        method = request.method
        endpoint = request.url.path

        HTTP_REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()

        start_time = time.perf_counter()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.perf_counter() - start_time

            HTTP_REQUEST_DURATION.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code,
            ).observe(duration)

            HTTP_REQUEST_TOTAL.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()

            HTTP_REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()

        return response


# ============================================================
# Helper Functions
# ============================================================


def track_clustering(problem_size: int):
    """
    Context manager to track a clustering run.

    Usage:
        with track_clustering(len(jobs)) as tracker:
            result = engine.cluster(jobs)
            tracker.set_result(result)
    """

    class ClusteringTracker:
        def __init__(self):
            self.start_time = None
            self.result = None

        def __enter__(self):
            self.start_time = time.perf_counter()
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            duration = time.perf_counter() - self.start_time
            CLUSTERING_DURATION.labels(problem_size=self._size_bucket(problem_size)).observe(duration)

            if exc_type:
                CLUSTERING_RUNS_TOTAL.labels(status="error").inc()
                return

            CLUSTERING_RUNS_TOTAL.labels(status="success").inc()
            if self.result is not None:
                CLUSTERS_PRODUCED.observe(len(self.result.clusters))
                record_skipped_jobs("cluster", len(self.result.skipped))

        def set_result(self, result):
            self.result = result

        def _size_bucket(self, size: int) -> str:
            if size <= 10:
                return "1-10"
            elif size <= 50:
                return "11-50"
            elif size <= 100:
                return "51-100"
            else:
                return "100+"

    return ClusteringTracker()


def record_skipped_jobs(operation: str, count: int) -> None:
    """Record jobs excluded because their location could not be resolved."""
    if count:
        JOBS_SKIPPED_TOTAL.labels(operation=operation).inc(count)


def record_anchor_match(candidate_count: int, skipped_count: int) -> None:
    """Record the outcome of an anchor match."""
    ANCHOR_CANDIDATES.observe(candidate_count)
    record_skipped_jobs("anchor_match", skipped_count)


# ============================================================
# Metrics Endpoint
# ============================================================


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
