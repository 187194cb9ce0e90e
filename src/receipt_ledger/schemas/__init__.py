"""
Schemas for the receipt-ledger pipeline.

Provides:
- DocumentUpload + processing states
- ExtractedData / OCRResult (canonical extraction output)
- TransactionSuggestion + corrections
- Ledger shapes (Account, Transaction, LedgerEntry)
"""

from .document import DocumentType, DocumentUpload, ProcessingStatus, utc_timestamp
from .extraction import (
    AmountInfo,
    BankStatementInfo,
    BankStatementTransaction,
    DateInfo,
    ExtractedData,
    LineItem,
    MerchantInfo,
    OCRMetadata,
    OCRResult,
    StatementPeriod,
)
from .ledger import Account, Category, EntryType, LedgerEntry, Transaction
from .suggestion import (
    SuggestionCorrections,
    SuggestionMetadata,
    SuggestionSource,
    TransactionSuggestion,
    apply_corrections,
)

__all__ = [
    "Account",
    "AmountInfo",
    "BankStatementInfo",
    "BankStatementTransaction",
    "Category",
    "DateInfo",
    "DocumentType",
    "DocumentUpload",
    "EntryType",
    "ExtractedData",
    "LedgerEntry",
    "LineItem",
    "MerchantInfo",
    "OCRMetadata",
    "OCRResult",
    "ProcessingStatus",
    "StatementPeriod",
    "SuggestionCorrections",
    "SuggestionMetadata",
    "SuggestionSource",
    "Transaction",
    "TransactionSuggestion",
    "apply_corrections",
    "utc_timestamp",
]
