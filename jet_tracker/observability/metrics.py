"""
Prometheus metrics for collection runs.

Counts what every run summary reports (candidates found, items stored,
duplicates, classifier outcomes, per-source failures) so trends across runs
are visible without reading logs. Exposed over HTTP for scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from jet_tracker.config.settings import get_settings

logger = logging.getLogger(__name__)

LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the jet-tracker pipeline.

    Usage:
        metrics = get_metrics()
        metrics.record_source_fetched("news", found=12, latency=0.8)
        metrics.record_classification("rate_limited")
    """

    def __init__(self):
        self.candidates_found = Counter(
            "jet_tracker_candidates_found_total",
            "Candidates parsed from sources (after window filtering)",
            ["source_type"],
        )

        self.items_stored = Counter(
            "jet_tracker_items_stored_total",
            "New items or social posts written",
            ["source_type"],
        )

        self.duplicates_detected = Counter(
            "jet_tracker_duplicates_detected_total",
            "Candidates skipped because their natural key already exists",
            ["source_type", "phase"],  # phase: precheck, insert_conflict
        )

        self.classifications = Counter(
            "jet_tracker_classifications_total",
            "Classifier calls by outcome",
            ["outcome"],  # ok, failed, rate_limited, quota_exceeded
        )

        self.source_errors = Counter(
            "jet_tracker_source_errors_total",
            "Sources that failed during a run",
            ["source_type", "error_type"],
        )

        self.fetch_latency = Histogram(
            "jet_tracker_fetch_latency_seconds",
            "Time to fetch and parse one source",
            ["source_type"],
            buckets=LATENCY_BUCKETS,
        )

        self.run_duration = Histogram(
            "jet_tracker_run_duration_seconds",
            "Wall time of a whole run",
            ["operation"],
            buckets=LATENCY_BUCKETS + (120.0, 300.0, 600.0),
        )

        self.last_run_timestamp = Gauge(
            "jet_tracker_last_run_timestamp_seconds",
            "Unix time a run of this operation last finished",
            ["operation"],
        )

        self._server_started = False

    def start_server(self, port: int | None = None) -> None:
        """Start the Prometheus HTTP endpoint (once per process)."""
        if self._server_started:
            return

        port = port or get_settings().metrics_port
        start_http_server(port, registry=REGISTRY)
        self._server_started = True
        logger.info("Metrics server started on port %d", port)

    def record_source_fetched(self, source_type: str, found: int, latency: float) -> None:
        self.candidates_found.labels(source_type=source_type).inc(found)
        self.fetch_latency.labels(source_type=source_type).observe(latency)

    def record_stored(self, source_type: str, count: int = 1) -> None:
        self.items_stored.labels(source_type=source_type).inc(count)

    def record_duplicate(self, source_type: str, phase: str = "precheck") -> None:
        self.duplicates_detected.labels(source_type=source_type, phase=phase).inc()

    def record_classification(self, outcome: str) -> None:
        self.classifications.labels(outcome=outcome).inc()

    def record_source_error(self, source_type: str, error_type: str) -> None:
        self.source_errors.labels(source_type=source_type, error_type=error_type).inc()

    def record_run(self, operation: str, duration: float) -> None:
        """Record a finished run."""
        self.run_duration.labels(operation=operation).observe(duration)
        self.last_run_timestamp.labels(operation=operation).set_to_current_time()


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
