"""Tests for the Prometheus metrics collector."""

from prometheus_client import REGISTRY

from jet_tracker.observability.metrics import get_metrics


def _value(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsCollector:
    """The collector is a process singleton registered on the default registry."""

    def test_singleton(self):
        assert get_metrics() is get_metrics()

    def test_record_source_fetched(self):
        metrics = get_metrics()
        before = _value("jet_tracker_candidates_found_total", source_type="news")
        count_before = _value("jet_tracker_fetch_latency_seconds_count", source_type="news")

        metrics.record_source_fetched("news", found=5, latency=0.3)

        assert _value("jet_tracker_candidates_found_total", source_type="news") == before + 5
        assert _value("jet_tracker_fetch_latency_seconds_count", source_type="news") == count_before + 1

    def test_duplicates_by_phase(self):
        metrics = get_metrics()
        before = _value(
            "jet_tracker_duplicates_detected_total", source_type="social", phase="insert_conflict"
        )

        metrics.record_duplicate("social", "insert_conflict")

        assert _value(
            "jet_tracker_duplicates_detected_total", source_type="social", phase="insert_conflict"
        ) == before + 1

    def test_classification_outcomes(self):
        metrics = get_metrics()
        before = _value("jet_tracker_classifications_total", outcome="rate_limited")

        metrics.record_classification("rate_limited")

        assert _value("jet_tracker_classifications_total", outcome="rate_limited") == before + 1

    def test_record_run_sets_timestamp(self):
        get_metrics().record_run("collect", 1.5)

        assert _value("jet_tracker_last_run_timestamp_seconds", operation="collect") > 0
        assert _value("jet_tracker_run_duration_seconds_count", operation="collect") >= 1
