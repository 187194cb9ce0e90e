"""
Services: pipeline orchestration, approval, access checks and metrics.
"""

from .access import HouseholdAccess
from .approval import ApprovalService
from .metrics import MetricsSnapshot, ProcessingMetrics
from .pipeline import PipelineService
from .review import ValidationReport, review_ocr_result

__all__ = [
    "ApprovalService",
    "HouseholdAccess",
    "MetricsSnapshot",
    "PipelineService",
    "ProcessingMetrics",
    "ValidationReport",
    "review_ocr_result",
]
