"""
Transaction suggestion generator.

Turns an OCR result into candidate ledger transactions:
- Receipts: one main suggestion for the total, one per line item
- Bank statements: one suggestion per statement row

Generation never mutates the OCR result or the document. Its only
dependency on state is the category history lookup.
"""

import logging
import re
import uuid
from datetime import date as date_cls
from decimal import Decimal
from typing import Optional

from ..confidence import ConfidenceScorer
from ..schemas.document import DocumentType
from ..schemas.extraction import BankStatementTransaction, OCRResult
from ..schemas.suggestion import SuggestionMetadata, SuggestionSource, TransactionSuggestion
from .categorizer import Categorizer, CategoryGuess

logger = logging.getLogger(__name__)

UNKNOWN_MERCHANT = "Unknown Merchant"

# Statement descriptions that carry the counterparty after a fixed prefix
MERCHANT_PREFIX_PATTERNS = [
    re.compile(r"BELANJA\s+(.+)", re.IGNORECASE),
    re.compile(r"BAYAR\s+(.+)", re.IGNORECASE),
    re.compile(r"TRANSFER\s+KE\s+(.+)", re.IGNORECASE),
    re.compile(r"TRF\s+DARI\s+(.+)", re.IGNORECASE),
]


def extract_merchant_from_description(description: str) -> Optional[str]:
    for pattern in MERCHANT_PREFIX_PATTERNS:
        match = pattern.search(description)
        if match:
            return match.group(1).strip()
    return None


def new_suggestion_id() -> str:
    return str(uuid.uuid4())


class SuggestionGenerator:
    """Generates transaction suggestions from OCR results."""

    def __init__(
        self,
        categorizer: Categorizer,
        scorer: Optional[ConfidenceScorer] = None,
        default_currency: str = "IDR",
    ):
        self.categorizer = categorizer
        self.scorer = scorer or ConfidenceScorer()
        self.default_currency = default_currency

    def generate(self, ocr_result: OCRResult, household_id: str) -> list[TransactionSuggestion]:
        """
        Generate suggestions for an OCR result, dispatched by document type.

        Returns an empty list for document types without a suggestion rule.
        """
        if ocr_result.document_type in (DocumentType.RECEIPT, DocumentType.INVOICE):
            suggestions = self._receipt_suggestions(ocr_result, household_id)
        elif ocr_result.document_type == DocumentType.BANK_STATEMENT:
            suggestions = self._statement_suggestions(ocr_result, household_id)
        else:
            logger.warning(
                "Unsupported document type for suggestions: %s", ocr_result.document_type.value
            )
            suggestions = []

        logger.info(
            "Generated %d transaction suggestions for OCR result %s",
            len(suggestions),
            ocr_result.id,
        )
        return suggestions

    def _receipt_suggestions(
        self, ocr_result: OCRResult, household_id: str
    ) -> list[TransactionSuggestion]:
        data = ocr_result.extracted_data
        merchant = data.merchant.name if data.merchant else UNKNOWN_MERCHANT
        transaction_date = data.date.date if data.date else date_cls.today().isoformat()
        currency = data.amount.currency if data.amount else self.default_currency

        suggestions: list[TransactionSuggestion] = []

        if data.amount and data.amount.total > 0:
            category = self.categorizer.for_merchant(merchant, household_id)
            suggestions.append(
                self._build(
                    ocr_result,
                    description=f"Purchase at {merchant}",
                    amount=-abs(data.amount.total),
                    currency=currency,
                    transaction_date=transaction_date,
                    merchant=merchant,
                    category=category,
                    confidence=self.scorer.suggestion_confidence(data),
                    source=SuggestionSource.RECEIPT,
                    metadata=SuggestionMetadata(
                        ocr_result_id=ocr_result.id,
                        original_text=ocr_result.raw_text,
                    ),
                )
            )

        for index, item in enumerate(data.items):
            category = self.categorizer.for_item(item.description, household_id)
            suggestions.append(
                self._build(
                    ocr_result,
                    description=f"{item.description} at {merchant}",
                    amount=-abs(item.total_price),
                    currency=currency,
                    transaction_date=transaction_date,
                    merchant=merchant,
                    category=category,
                    confidence=item.confidence,
                    source=SuggestionSource.RECEIPT,
                    metadata=SuggestionMetadata(
                        ocr_result_id=ocr_result.id,
                        line_item_index=index,
                        original_text=item.description,
                    ),
                )
            )

        return suggestions

    def _statement_suggestions(
        self, ocr_result: OCRResult, household_id: str
    ) -> list[TransactionSuggestion]:
        statement = ocr_result.extracted_data.bank_statement
        if statement is None:
            return []

        return [
            self._statement_row_suggestion(ocr_result, row, index, household_id)
            for index, row in enumerate(statement.transactions)
        ]

    def _statement_row_suggestion(
        self,
        ocr_result: OCRResult,
        row: BankStatementTransaction,
        index: int,
        household_id: str,
    ) -> TransactionSuggestion:
        return self._build(
            ocr_result,
            description=row.description,
            amount=row.amount,
            currency=self.default_currency,
            transaction_date=row.date,
            merchant=extract_merchant_from_description(row.description),
            category=self.categorizer.for_description(row.description, household_id),
            confidence=self.scorer.statement_suggestion_confidence(),
            source=SuggestionSource.BANK_STATEMENT,
            metadata=SuggestionMetadata(
                ocr_result_id=ocr_result.id,
                line_item_index=index,
                original_text=row.description,
            ),
        )

    @staticmethod
    def _build(
        ocr_result: OCRResult,
        *,
        description: str,
        amount: Decimal,
        currency: str,
        transaction_date: str,
        merchant: Optional[str],
        category: Optional[CategoryGuess],
        confidence: float,
        source: SuggestionSource,
        metadata: SuggestionMetadata,
    ) -> TransactionSuggestion:
        return TransactionSuggestion(
            id=new_suggestion_id(),
            document_id=ocr_result.document_id,
            ocr_result_id=ocr_result.id,
            description=description,
            amount=amount,
            currency=currency,
            date=transaction_date,
            confidence=confidence,
            source=source,
            metadata=metadata,
            merchant=merchant,
            suggested_category_id=category.id if category else None,
            suggested_category_name=category.name if category else None,
        )

