"""
Error taxonomy (SSOT).

Every error raised across the pipeline carries a stable classification
``code`` so callers at the boundary can map it without string matching.

Families:
- ValidationError: client-fixable input problems, never retried
- SecurityError: path traversal / bad identifiers, logged as security events
- NotFoundError: document, suggestion or account absent
- ConflictError: state conflicts and idempotency guards
- TransientError: eligible for the orchestrator's retry loop
- BusinessRuleError: approval-time rule rejections, never retried
"""

from typing import Any, Optional


class ReceiptLedgerError(Exception):
    """Base exception for all pipeline errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured error for synchronous callers."""
        return {"error": self.code, "message": self.message}


# Validation


class ValidationError(ReceiptLedgerError):
    """Input failed synchronous validation."""

    code = "VALIDATION_ERROR"


class EmptyFileError(ValidationError):
    code = "EMPTY_FILE"


class FileTooLargeError(ValidationError):
    code = "FILE_TOO_LARGE"


class InvalidFileNameError(ValidationError):
    code = "INVALID_FILE_NAME"


class UnsupportedMediaTypeError(ValidationError):
    code = "UNSUPPORTED_MEDIA_TYPE"


class SignatureMismatchError(ValidationError):
    code = "SIGNATURE_MISMATCH"


class UnsupportedDocumentTypeError(ValidationError):
    code = "UNSUPPORTED_DOCUMENT_TYPE"


# Security


class SecurityError(ReceiptLedgerError):
    """Rejected for security reasons."""

    code = "SECURITY_ERROR"


class PathTraversalError(SecurityError):
    code = "PATH_TRAVERSAL"


class InvalidIdentifierError(SecurityError):
    code = "INVALID_IDENTIFIER"


class AccessDeniedError(ReceiptLedgerError):
    """User is not a member of the household."""

    code = "ACCESS_DENIED"


# Lookup


class NotFoundError(ReceiptLedgerError):
    code = "NOT_FOUND"


# Conflicts


class ConflictError(ReceiptLedgerError):
    code = "CONFLICT"


class AlreadyProcessingError(ConflictError):
    code = "ALREADY_PROCESSING"


class AlreadyApprovedError(ConflictError):
    code = "ALREADY_APPROVED"


# Transient (retried by the orchestrator)


class TransientError(ReceiptLedgerError):
    code = "TRANSIENT_ERROR"


class ProcessingTimeoutError(TransientError):
    code = "TIMEOUT"


class ExtractionFailureError(TransientError):
    code = "EXTRACTION_FAILURE"


# Business rules (approval)


class BusinessRuleError(ReceiptLedgerError):
    code = "BUSINESS_RULE"


class InvalidAmountError(BusinessRuleError):
    code = "INVALID_AMOUNT"


class InvalidStateError(BusinessRuleError):
    code = "INVALID_STATE"


class UnsupportedCurrencyError(BusinessRuleError):
    code = "UNSUPPORTED_CURRENCY"
