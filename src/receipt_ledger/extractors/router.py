"""
Extractor router - chooses the extraction engine for a document category.
"""

import logging
from typing import Optional

from ..confidence import ConfidenceScorer
from ..errors import UnsupportedDocumentTypeError
from ..schemas.document import DocumentType
from .backends import OCRBackend, StaticTextBackend
from .bank_statement_extractor import BankStatementExtractor
from .base import BaseExtractor, ExtractionOutput
from .receipt_extractor import ReceiptExtractor

logger = logging.getLogger(__name__)


class ExtractorRouter:
    """
    Routes extraction to the engine registered for the document category.

    - RECEIPT, INVOICE: receipt heuristics
    - BANK_STATEMENT: statement table parser
    - OTHER: unsupported
    """

    def __init__(
        self,
        backend: Optional[OCRBackend] = None,
        scorer: Optional[ConfidenceScorer] = None,
        extractors: Optional[list[BaseExtractor]] = None,
        default_currency: str = "IDR",
    ):
        backend = backend or StaticTextBackend()
        scorer = scorer or ConfidenceScorer()
        self.extractors: list[BaseExtractor] = extractors or [
            ReceiptExtractor(backend, scorer, default_currency=default_currency),
            BankStatementExtractor(backend, scorer),
        ]

    def select(self, document_type: DocumentType) -> BaseExtractor:
        """
        Pick the engine for a document category.

        Raises:
            UnsupportedDocumentTypeError: If no engine handles the category
        """
        for extractor in self.extractors:
            if extractor.can_extract(document_type):
                return extractor
        raise UnsupportedDocumentTypeError(
            f"No extraction engine for {document_type.value} documents"
        )

    def extract(
        self,
        file_bytes: bytes,
        mime_type: str,
        document_type: DocumentType,
    ) -> ExtractionOutput:
        """Run the engine registered for document_type."""
        extractor = self.select(document_type)
        logger.info("Extracting %s document with %s", document_type.value, extractor.name)
        return extractor.extract(file_bytes, mime_type, document_type)
