"""Tests for in-memory processing metrics."""

import pytest

from receipt_ledger.schemas import DocumentType, ProcessingStatus
from receipt_ledger.services import ProcessingMetrics

HOUR = 3600


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics(clock):
    return ProcessingMetrics(clock=clock)


def run(metrics, clock, document_id, status=ProcessingStatus.COMPLETED, seconds=1.0, confidence=0.9):
    metrics.record_processing_start(document_id, DocumentType.RECEIPT)
    clock.advance(seconds)
    metrics.record_processing_end(
        document_id,
        status,
        confidence=None if status == ProcessingStatus.FAILED else confidence,
        error_message="boom" if status == ProcessingStatus.FAILED else None,
    )


class TestSnapshot:
    """Tests for windowed processing summaries."""

    def test_empty(self, metrics):
        snapshot = metrics.snapshot()
        assert snapshot.documents_processed == 0
        assert snapshot.success_rate == 0.0
        assert snapshot.average_confidence == 0.0

    def test_processing_time(self, metrics, clock):
        run(metrics, clock, "doc-1", seconds=1.5)

        snapshot = metrics.snapshot()
        assert snapshot.average_processing_time_ms == pytest.approx(1500)
        assert snapshot.processing_time_by_type == {"RECEIPT": [pytest.approx(1500)]}

    def test_rates(self, metrics, clock):
        run(metrics, clock, "doc-1")
        run(metrics, clock, "doc-2", status=ProcessingStatus.REQUIRES_REVIEW, confidence=0.5)
        run(metrics, clock, "doc-3", status=ProcessingStatus.FAILED)

        snapshot = metrics.snapshot()
        assert snapshot.documents_processed == 3
        assert snapshot.success_rate == pytest.approx(2 / 3)
        assert snapshot.error_rate == pytest.approx(1 / 3)
        assert snapshot.average_confidence == pytest.approx(0.7)
        assert snapshot.document_type_breakdown == {"RECEIPT": 3}

    def test_end_without_start_ignored(self, metrics):
        metrics.record_processing_end("unknown", ProcessingStatus.COMPLETED)
        assert metrics.snapshot().documents_processed == 0

    def test_window_excludes_old_runs(self, metrics, clock):
        run(metrics, clock, "doc-1")
        clock.advance(25 * HOUR)
        run(metrics, clock, "doc-2")

        assert metrics.snapshot().documents_processed == 1
        assert metrics.snapshot(hours=48).documents_processed == 2

    def test_to_dict(self, metrics, clock):
        run(metrics, clock, "doc-1", confidence=0.8)
        data = metrics.snapshot().to_dict()

        assert data["documents_processed"] == 1
        assert data["average_confidence"] == pytest.approx(0.8)


class TestSuggestionSnapshot:
    def test_empty(self, metrics):
        assert metrics.suggestion_snapshot()["total_suggestions"] == 0

    def test_volume_and_approval_rate(self, metrics):
        metrics.record_suggestions("doc-1", 4, 0.9)
        metrics.record_suggestions("doc-2", 2, 0.8)
        metrics.record_approval("s-1", approved=True)
        metrics.record_approval("s-2", approved=False)

        summary = metrics.suggestion_snapshot()

        assert summary["total_suggestions"] == 6
        assert summary["average_suggestions_per_document"] == 3
        assert summary["average_confidence"] == pytest.approx(0.85)
        assert summary["approval_rate"] == 0.5


class TestHealthStatus:
    """Tests for health classification over the last hour."""

    def test_healthy_without_data(self, metrics):
        health = metrics.health_status()
        assert health["status"] == "healthy"
        assert health["issues"] == []

    def test_degraded_error_rate(self, metrics, clock):
        for i in range(4):
            run(metrics, clock, f"ok-{i}")
        run(metrics, clock, "bad", status=ProcessingStatus.FAILED)

        health = metrics.health_status()
        assert health["status"] == "degraded"
        assert health["issues"] == ["High error rate: 20.0%"]

    def test_unhealthy_error_rate(self, metrics, clock):
        run(metrics, clock, "ok")
        run(metrics, clock, "bad", status=ProcessingStatus.FAILED)

        assert metrics.health_status()["status"] == "unhealthy"

    def test_slow_processing(self, metrics, clock):
        run(metrics, clock, "doc-1", seconds=12)

        health = metrics.health_status()
        assert health["status"] == "degraded"
        assert health["issues"] == ["Slow processing: 12.0s average"]

    def test_low_confidence(self, metrics, clock):
        run(metrics, clock, "doc-1", confidence=0.4)

        health = metrics.health_status()
        assert health["status"] == "degraded"
        assert health["issues"] == ["Low confidence: 40.0% average"]

    def test_only_last_hour_counts(self, metrics, clock):
        run(metrics, clock, "bad", status=ProcessingStatus.FAILED)
        clock.advance(2 * HOUR)

        assert metrics.health_status()["status"] == "healthy"


class TestHousekeeping:
    def test_upload_count(self, metrics):
        metrics.record_upload(DocumentType.RECEIPT, 100)
        metrics.record_upload(DocumentType.BANK_STATEMENT, 100)

        assert metrics.upload_count() == 2
        assert metrics.upload_count(DocumentType.RECEIPT) == 1

    def test_cleanup(self, metrics, clock):
        metrics.record_upload(DocumentType.RECEIPT, 100)
        run(metrics, clock, "doc-1")
        clock.advance(8 * 24 * HOUR)
        metrics.record_upload(DocumentType.RECEIPT, 100)

        metrics.cleanup()

        assert metrics.upload_count() == 1
        assert metrics.snapshot(hours=10 * 24).documents_processed == 0
