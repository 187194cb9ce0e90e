"""
Transaction suggestions and user corrections.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import date as date_cls
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from ..errors import ValidationError

CENT = Decimal("0.01")


class SuggestionSource(str, Enum):
    RECEIPT = "RECEIPT"
    BANK_STATEMENT = "BANK_STATEMENT"


@dataclass
class SuggestionMetadata:
    """Provenance of a suggestion."""

    ocr_result_id: str
    line_item_index: Optional[int] = None
    original_text: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "ocr_result_id": self.ocr_result_id,
            "line_item_index": self.line_item_index,
            "original_text": self.original_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestionMetadata":
        return cls(
            ocr_result_id=data.get("ocr_result_id", ""),
            line_item_index=data.get("line_item_index"),
            original_text=data.get("original_text"),
        )


@dataclass
class TransactionSuggestion:
    """
    A proposed, not-yet-committed ledger transaction.

    Single-use: once approved it is immutable and carries the id of the
    transaction it produced.
    """

    id: str
    document_id: str
    ocr_result_id: str
    description: str
    amount: Decimal  # Signed: negative = outflow
    currency: str
    date: str  # ISO format YYYY-MM-DD
    confidence: float
    source: SuggestionSource
    metadata: SuggestionMetadata
    merchant: Optional[str] = None
    suggested_category_id: Optional[str] = None
    suggested_category_name: Optional[str] = None

    # Approval state
    approved: bool = False
    approved_at: Optional[str] = None
    created_transaction_id: Optional[str] = None

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "ocr_result_id": self.ocr_result_id,
            "description": self.description,
            "amount": str(self.amount),
            "currency": self.currency,
            "date": self.date,
            "merchant": self.merchant,
            "suggested_category_id": self.suggested_category_id,
            "suggested_category_name": self.suggested_category_name,
            "confidence": self.confidence,
            "source": self.source.value,
            "metadata": self.metadata.to_dict(),
            "approved": self.approved,
            "approved_at": self.approved_at,
            "created_transaction_id": self.created_transaction_id,
        }


@dataclass
class SuggestionCorrections:
    """User-supplied field overrides applied at approval time."""

    description: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    date: Optional[str] = None
    merchant: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None

    # Corrections keys mapped onto suggestion attributes
    FIELD_MAP = {
        "description": "description",
        "amount": "amount",
        "currency": "currency",
        "date": "date",
        "merchant": "merchant",
        "category_id": "suggested_category_id",
        "category_name": "suggested_category_name",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SuggestionCorrections":
        """Build corrections from a caller-supplied mapping.

        Raises:
            ValidationError: On unknown fields, a non-finite or sub-cent amount,
                or a non-ISO date
        """
        unknown = set(data) - set(cls.FIELD_MAP)
        if unknown:
            raise ValidationError(f"Unknown correction fields: {', '.join(sorted(unknown))}")

        values = dict(data)
        if values.get("amount") is not None:
            try:
                amount = Decimal(str(values["amount"]))
                cents = amount.quantize(CENT) if amount.is_finite() else None
            except InvalidOperation:
                cents = None
            if cents is None:
                raise ValidationError(f"Invalid amount correction: {data['amount']!r}")
            # Ledger amounts are whole cents
            if amount != cents:
                raise ValidationError(
                    f"Amount correction has more than two decimal places: {data['amount']!r}"
                )
            values["amount"] = amount
        if values.get("date") is not None:
            try:
                date_cls.fromisoformat(values["date"])
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid date correction: {data['date']!r}")
        return cls(**values)

    def changed_fields(self) -> list[str]:
        return [name for name in self.FIELD_MAP if getattr(self, name) is not None]


def apply_corrections(
    suggestion: TransactionSuggestion,
    corrections: Optional[SuggestionCorrections],
) -> TransactionSuggestion:
    """Return a finalized copy of the suggestion. The input is never mutated."""
    if corrections is None:
        return dataclasses.replace(suggestion)

    overrides = {
        SuggestionCorrections.FIELD_MAP[name]: getattr(corrections, name)
        for name in corrections.changed_fields()
    }
    return dataclasses.replace(suggestion, **overrides)
