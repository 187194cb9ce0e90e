"""
Plausibility review of OCR results before the user approves anything.

Errors make a result invalid; warnings only flag fields worth a second look.
User corrections are echoed back as field-level suggestions.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date as date_cls
from typing import Any, Optional

from ..schemas.extraction import OCRResult

LOW_CONFIDENCE = 0.7
LOW_AMOUNT_CONFIDENCE = 0.8
LOW_MERCHANT_CONFIDENCE = 0.7


@dataclass
class ValidationReport:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


def shift_months(day: date_cls, months: int) -> date_cls:
    """Move a date by whole months, clamping to the last day of the target month."""
    index = day.year * 12 + day.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    return date_cls(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def lookup_path(data: dict[str, Any], path: str) -> Any:
    """Resolve a dotted path like 'amount.total' in nested dictionaries."""
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def review_ocr_result(
    result: OCRResult,
    corrections: Optional[dict[str, Any]] = None,
    today: Optional[date_cls] = None,
) -> ValidationReport:
    today = today or date_cls.today()
    data = result.extracted_data
    errors: list[str] = []
    warnings: list[str] = []

    if result.confidence < LOW_CONFIDENCE:
        warnings.append("Low OCR confidence - please verify extracted data")

    if data.amount:
        if data.amount.total <= 0:
            errors.append("Invalid amount detected")
        if data.amount.confidence < LOW_AMOUNT_CONFIDENCE:
            warnings.append("Amount extraction has low confidence")

    if data.date:
        try:
            extracted = date_cls.fromisoformat(data.date.date)
        except ValueError:
            errors.append(f"Unreadable date: {data.date.date!r}")
        else:
            if extracted < shift_months(today, -12) or extracted > shift_months(today, 1):
                warnings.append("Date seems unusual - please verify")

    if data.merchant and data.merchant.confidence < LOW_MERCHANT_CONFIDENCE:
        warnings.append("Merchant name has low confidence")

    suggestions: list[dict[str, Any]] = []
    if corrections:
        extracted_dict = data.to_dict()
        for path, value in corrections.items():
            suggestions.append(
                {
                    "field": path,
                    "original_value": lookup_path(extracted_dict, path),
                    "suggested_value": value,
                    "reason": "User correction",
                    "confidence": 1.0,
                }
            )

    return ValidationReport(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
    )
