"""
Extraction engines.

Strategies:
- Receipt heuristics (receipts, invoices)
- Bank statement table parser
"""

from .backends import HttpOCRBackend, OCRBackend, StaticTextBackend
from .bank_statement_extractor import BankStatementExtractor
from .base import BaseExtractor, ExtractionOutput
from .receipt_extractor import ReceiptExtractor
from .router import ExtractorRouter

__all__ = [
    "BankStatementExtractor",
    "BaseExtractor",
    "ExtractionOutput",
    "ExtractorRouter",
    "HttpOCRBackend",
    "OCRBackend",
    "ReceiptExtractor",
    "StaticTextBackend",
]
