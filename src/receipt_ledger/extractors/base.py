"""
Base extractor interface and common types.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..confidence import ConfidenceScorer
from ..errors import ExtractionFailureError
from ..schemas.document import DocumentType
from ..schemas.extraction import ExtractedData, OCRMetadata
from .backends import OCRBackend

logger = logging.getLogger(__name__)


@dataclass
class ExtractionOutput:
    """Result from one extraction run."""

    raw_text: str
    extracted_data: ExtractedData
    confidence: float
    metadata: OCRMetadata = field(default_factory=OCRMetadata)


def parse_amount(amount_str: Optional[str]) -> Decimal:
    """Parse a comma-grouped amount (93,500 or 5,000,000.00) to Decimal. Unparseable -> 0."""
    if not amount_str:
        return Decimal("0")
    cleaned = amount_str.replace(",", "").rstrip(".")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")


def split_lines(raw_text: str) -> list[str]:
    """Trimmed, non-empty lines."""
    return [line.strip() for line in raw_text.splitlines() if line.strip()]


class BaseExtractor(ABC):
    """
    Base class for all extraction engines.

    Each engine handles one document category:
    - Receipts (and invoices)
    - Bank statements

    extract() is the template: validate bytes, recognize text through the
    OCR backend, parse fields, score. Engines only implement parse() and
    score().
    """

    def __init__(self, backend: OCRBackend, scorer: Optional[ConfidenceScorer] = None):
        self.backend = backend
        self.scorer = scorer or ConfidenceScorer()

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging and provenance."""
        pass

    @property
    @abstractmethod
    def document_types(self) -> tuple[DocumentType, ...]:
        """Document categories this engine handles."""
        pass

    def can_extract(self, document_type: DocumentType) -> bool:
        return document_type in self.document_types

    @abstractmethod
    def parse(self, raw_text: str) -> ExtractedData:
        """
        Parse raw text into structured fields.

        Malformed text degrades confidence; it never raises.
        """
        pass

    @abstractmethod
    def score(self, data: ExtractedData, raw_text: str) -> float:
        """Overall confidence of the parsed fields."""
        pass

    def page_count(self, raw_text: str) -> Optional[int]:
        return None

    def extract(
        self,
        file_bytes: bytes,
        mime_type: str,
        document_type: Optional[DocumentType] = None,
    ) -> ExtractionOutput:
        """
        Extract structured data from document bytes.

        Args:
            file_bytes: Original file bytes
            mime_type: Declared MIME type
            document_type: Category being extracted (defaults to the engine's first)

        Returns:
            ExtractionOutput with raw text, fields, confidence and metadata

        Raises:
            ExtractionFailureError: On empty bytes or OCR backend failure
        """
        if not file_bytes:
            raise ExtractionFailureError("Invalid document buffer")

        document_type = document_type or self.document_types[0]
        started = time.monotonic()

        logger.debug("Running %s over %d bytes (%s)", self.name, len(file_bytes), mime_type)
        raw_text = self.backend.recognize(file_bytes, mime_type, document_type).strip()

        data = self.parse(raw_text)
        confidence = self.score(data, raw_text)

        metadata = OCRMetadata(
            processing_time_ms=int((time.monotonic() - started) * 1000),
            engine=f"{self.name}/{self.backend.name}",
            document_format=mime_type,
            page_count=self.page_count(raw_text),
        )
        return ExtractionOutput(
            raw_text=raw_text,
            extracted_data=data,
            confidence=confidence,
            metadata=metadata,
        )
