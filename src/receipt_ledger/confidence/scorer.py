"""
Confidence scoring implementation.
"""

from dataclasses import dataclass
from typing import Optional

from ..schemas.document import ProcessingStatus
from ..schemas.extraction import BankStatementInfo, ExtractedData


@dataclass
class ConfidenceThresholds:
    """Configurable thresholds for suggestion and review decisions."""

    review_threshold: float = 0.60  # Below this: REQUIRES_REVIEW (opt-in only)

    # Field confidences that earn a suggestion bonus
    merchant_bonus_above: float = 0.7
    amount_bonus_above: float = 0.8
    date_bonus_above: float = 0.8

    # Bank statements are considered more reliable than OCR receipts
    statement_suggestion_confidence: float = 0.8


def clamp(value: float) -> float:
    """Clamp a confidence value to [0, 1]."""
    return max(0.0, min(1.0, value))


class ConfidenceScorer:
    """
    Computes document and suggestion confidence scores.

    Document confidence is derived only from the extracted fields
    (plus a text-quality factor); it is never set independently.
    """

    # Keywords whose presence indicates a readable receipt
    RECEIPT_KEYWORDS = ("total", "date", "receipt", "tax", "subtotal")

    # Returned when nothing at all was extracted
    EMPTY_CONFIDENCE = 0.5

    def __init__(
        self,
        thresholds: Optional[ConfidenceThresholds] = None,
        review_opt_in: bool = False,
    ):
        """Initialize scorer with thresholds."""
        self.thresholds = thresholds or ConfidenceThresholds()
        self.review_opt_in = review_opt_in

    def assess_text_quality(self, raw_text: str) -> float:
        """
        Rate OCR text quality in [0.3, 1.0].

        Short text scores low; longer text scores by how many common
        receipt keywords it contains.
        """
        if len(raw_text) < 50:
            return 0.3
        if len(raw_text) < 200:
            return 0.6

        lowered = raw_text.lower()
        found = sum(1 for keyword in self.RECEIPT_KEYWORDS if keyword in lowered)
        return min(0.5 + (found / len(self.RECEIPT_KEYWORDS)) * 0.5, 1.0)

    def overall_confidence(self, data: ExtractedData, raw_text: str) -> float:
        """
        Mean of the populated field confidences plus the text-quality factor.

        Line items contribute their own mean as a single factor.
        """
        if data.is_empty():
            return self.EMPTY_CONFIDENCE

        factors: list[float] = []
        if data.merchant:
            factors.append(data.merchant.confidence)
        if data.date:
            factors.append(data.date.confidence)
        if data.amount:
            factors.append(data.amount.confidence)
        if data.items:
            factors.append(sum(item.confidence for item in data.items) / len(data.items))

        factors.append(self.assess_text_quality(raw_text))
        return clamp(sum(factors) / len(factors))

    def statement_confidence(self, info: BankStatementInfo, period_found: bool) -> float:
        """
        Confidence of a parsed bank statement.

        Base 0.5, +0.2 account number, +0.1 bank name, +0.2 any rows,
        +0.1 statement period.
        """
        confidence = 0.5
        if info.account_number and info.account_number != "Unknown":
            confidence += 0.2
        if info.bank_name and info.bank_name != "Unknown Bank":
            confidence += 0.1
        if info.transactions:
            confidence += 0.2
        if period_found:
            confidence += 0.1
        return clamp(confidence)

    def suggestion_confidence(self, data: ExtractedData) -> float:
        """
        Confidence of the main receipt suggestion.

        Base 0.5, +0.2 confident merchant, +0.2 confident amount,
        +0.1 confident date, capped at 1.0.
        """
        confidence = 0.5
        if data.merchant and data.merchant.confidence > self.thresholds.merchant_bonus_above:
            confidence += 0.2
        if data.amount and data.amount.confidence > self.thresholds.amount_bonus_above:
            confidence += 0.2
        if data.date and data.date.confidence > self.thresholds.date_bonus_above:
            confidence += 0.1
        return clamp(confidence)

    def statement_suggestion_confidence(self) -> float:
        return self.thresholds.statement_suggestion_confidence

    def processing_status(self, confidence: float) -> ProcessingStatus:
        """
        Terminal status for a successfully processed document.

        Low-confidence results are parked in REQUIRES_REVIEW only when
        the caller opted in.
        """
        if self.review_opt_in and confidence < self.thresholds.review_threshold:
            return ProcessingStatus.REQUIRES_REVIEW
        return ProcessingStatus.COMPLETED
