"""
Confidence scoring for extractions and suggestions.
"""

from .scorer import ConfidenceScorer, ConfidenceThresholds, clamp

__all__ = ["ConfidenceScorer", "ConfidenceThresholds", "clamp"]
