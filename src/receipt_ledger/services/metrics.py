"""
In-memory processing metrics.

Records uploads, processing runs, suggestion batches and approvals, and
summarizes them over a trailing time window. Thread-safe: worker threads
record concurrently.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from ..schemas.document import DocumentType, ProcessingStatus

logger = logging.getLogger(__name__)


@dataclass
class ProcessingRecord:
    document_id: str
    document_type: DocumentType
    processing_time_ms: float
    status: ProcessingStatus
    timestamp: float
    confidence: Optional[float] = None
    error_message: Optional[str] = None


@dataclass
class MetricsSnapshot:
    """Processing summary over a time window."""

    documents_processed: int = 0
    average_processing_time_ms: float = 0.0
    success_rate: float = 0.0
    error_rate: float = 0.0
    confidence_scores: list[float] = field(default_factory=list)
    document_type_breakdown: dict[str, int] = field(default_factory=dict)
    processing_time_by_type: dict[str, list[float]] = field(default_factory=dict)

    @property
    def average_confidence(self) -> float:
        if not self.confidence_scores:
            return 0.0
        return sum(self.confidence_scores) / len(self.confidence_scores)

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents_processed": self.documents_processed,
            "average_processing_time_ms": self.average_processing_time_ms,
            "success_rate": self.success_rate,
            "error_rate": self.error_rate,
            "average_confidence": self.average_confidence,
            "confidence_scores": list(self.confidence_scores),
            "document_type_breakdown": dict(self.document_type_breakdown),
            "processing_time_by_type": {k: list(v) for k, v in self.processing_time_by_type.items()},
        }


class ProcessingMetrics:
    """Thread-safe recorder for pipeline metrics."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._uploads: list[dict[str, Any]] = []
        self._started: dict[str, tuple[float, DocumentType]] = {}
        self._results: list[ProcessingRecord] = []
        self._suggestion_batches: list[dict[str, Any]] = []
        self._approvals: list[dict[str, Any]] = []

    def record_upload(self, document_type: DocumentType, file_size: int) -> None:
        with self._lock:
            self._uploads.append(
                {"document_type": document_type, "file_size": file_size, "timestamp": self._clock()}
            )

    def record_processing_start(self, document_id: str, document_type: DocumentType) -> None:
        with self._lock:
            self._started[document_id] = (self._clock(), document_type)

    def record_processing_end(
        self,
        document_id: str,
        status: ProcessingStatus,
        confidence: Optional[float] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Close a processing run opened with record_processing_start. Unknown runs are ignored."""
        with self._lock:
            started = self._started.pop(document_id, None)
            if started is None:
                return
            now = self._clock()
            started_at, document_type = started
            record = ProcessingRecord(
                document_id=document_id,
                document_type=document_type,
                processing_time_ms=(now - started_at) * 1000,
                status=status,
                timestamp=now,
                confidence=confidence,
                error_message=error_message,
            )
            self._results.append(record)

        logger.info(
            "Document %s processed in %.0fms with status %s%s",
            document_id,
            record.processing_time_ms,
            status.value,
            f" and confidence {confidence:.2f}" if confidence is not None else "",
        )

    def record_suggestions(self, document_id: str, count: int, average_confidence: float) -> None:
        with self._lock:
            self._suggestion_batches.append(
                {
                    "document_id": document_id,
                    "count": count,
                    "average_confidence": average_confidence,
                    "timestamp": self._clock(),
                }
            )

    def record_approval(self, suggestion_id: str, approved: bool) -> None:
        with self._lock:
            self._approvals.append(
                {"suggestion_id": suggestion_id, "approved": approved, "timestamp": self._clock()}
            )

    def snapshot(self, hours: float = 24) -> MetricsSnapshot:
        """Summarize processing runs finished within the last `hours`."""
        cutoff = self._clock() - hours * 3600
        with self._lock:
            results = [r for r in self._results if r.timestamp > cutoff]

        if not results:
            return MetricsSnapshot()

        snapshot = MetricsSnapshot(documents_processed=len(results))
        for record in results:
            key = record.document_type.value
            snapshot.document_type_breakdown[key] = snapshot.document_type_breakdown.get(key, 0) + 1
            snapshot.processing_time_by_type.setdefault(key, []).append(record.processing_time_ms)
            if record.confidence is not None:
                snapshot.confidence_scores.append(record.confidence)

        succeeded = sum(1 for r in results if r.status != ProcessingStatus.FAILED)
        failed = len(results) - succeeded
        snapshot.average_processing_time_ms = sum(r.processing_time_ms for r in results) / len(results)
        snapshot.success_rate = succeeded / len(results)
        snapshot.error_rate = failed / len(results)
        return snapshot

    def suggestion_snapshot(self, hours: float = 24) -> dict[str, float]:
        """Suggestion volume, mean confidence and approval rate within the last `hours`."""
        cutoff = self._clock() - hours * 3600
        with self._lock:
            batches = [b for b in self._suggestion_batches if b["timestamp"] > cutoff]
            approvals = [a for a in self._approvals if a["timestamp"] > cutoff]

        if not batches:
            return {
                "total_suggestions": 0,
                "average_suggestions_per_document": 0.0,
                "average_confidence": 0.0,
                "approval_rate": 0.0,
            }

        total = sum(b["count"] for b in batches)
        approved = sum(1 for a in approvals if a["approved"])
        return {
            "total_suggestions": total,
            "average_suggestions_per_document": total / len(batches),
            "average_confidence": sum(b["average_confidence"] for b in batches) / len(batches),
            "approval_rate": approved / len(approvals) if approvals else 0.0,
        }

    def health_status(self) -> dict[str, Any]:
        """
        Health over the last hour.

        degraded: error rate > 10%, average time > 10s or confidence < 0.7
        unhealthy: error rate > 30%
        """
        snapshot = self.snapshot(hours=1)
        issues: list[str] = []
        status = "healthy"

        if snapshot.error_rate > 0.1:
            issues.append(f"High error rate: {snapshot.error_rate * 100:.1f}%")
            status = "degraded"
        if snapshot.error_rate > 0.3:
            status = "unhealthy"

        if snapshot.average_processing_time_ms > 10_000:
            issues.append(
                f"Slow processing: {snapshot.average_processing_time_ms / 1000:.1f}s average"
            )
            if status == "healthy":
                status = "degraded"

        if snapshot.documents_processed and snapshot.average_confidence < 0.7:
            issues.append(f"Low confidence: {snapshot.average_confidence * 100:.1f}% average")
            if status == "healthy":
                status = "degraded"

        return {"status": status, "issues": issues, "metrics": snapshot.to_dict()}

    def cleanup(self, max_age_hours: float = 168) -> None:
        """Drop records older than max_age_hours (default 7 days)."""
        cutoff = self._clock() - max_age_hours * 3600
        with self._lock:
            self._uploads = [u for u in self._uploads if u["timestamp"] > cutoff]
            self._results = [r for r in self._results if r.timestamp > cutoff]
            self._suggestion_batches = [
                b for b in self._suggestion_batches if b["timestamp"] > cutoff
            ]
            self._approvals = [a for a in self._approvals if a["timestamp"] > cutoff]
        logger.info("Cleaned up metrics older than %s hours", max_age_hours)

    def upload_count(self, document_type: Optional[DocumentType] = None) -> int:
        with self._lock:
            return sum(
                1 for u in self._uploads if document_type is None or u["document_type"] == document_type
            )
