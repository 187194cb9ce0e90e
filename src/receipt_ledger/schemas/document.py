"""
Document upload record and processing states.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class DocumentType(str, Enum):
    """Category of an uploaded document."""

    RECEIPT = "RECEIPT"
    BANK_STATEMENT = "BANK_STATEMENT"
    INVOICE = "INVOICE"
    OTHER = "OTHER"


class ProcessingStatus(str, Enum):
    """
    Document processing state.

    PENDING → PROCESSING → COMPLETED | FAILED
    REQUIRES_REVIEW is a terminal-equivalent state for low-confidence
    results when the caller opted in.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ProcessingStatus.COMPLETED,
            ProcessingStatus.FAILED,
            ProcessingStatus.REQUIRES_REVIEW,
        )


def utc_timestamp() -> str:
    """Current UTC time as an ISO timestamp with Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DocumentUpload:
    """
    An uploaded document.

    storage_token is set once at creation and never changes.
    Status transitions are owned by the pipeline orchestrator.
    """

    id: str
    household_id: str
    file_name: str
    file_size: int
    mime_type: str
    document_type: DocumentType
    status: ProcessingStatus
    uploaded_by: str
    uploaded_at: str  # ISO timestamp
    storage_token: str
    processed_at: Optional[str] = None  # ISO timestamp
    description: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "id": self.id,
            "household_id": self.household_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "document_type": self.document_type.value,
            "status": self.status.value,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at,
            "processed_at": self.processed_at,
            "storage_token": self.storage_token,
            "description": self.description,
        }
