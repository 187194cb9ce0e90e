"""
Upload intake: boundary validation for incoming documents.
"""

from .validation import (
    ALLOWED_MIME_TYPES,
    MAGIC_NUMBERS,
    MAX_UPLOAD_BYTES,
    UploadedFile,
    validate_upload,
)

__all__ = [
    "ALLOWED_MIME_TYPES",
    "MAGIC_NUMBERS",
    "MAX_UPLOAD_BYTES",
    "UploadedFile",
    "validate_upload",
]
