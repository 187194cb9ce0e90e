"""
Upload boundary validation.

Every check here runs before any byte reaches the document store.
Order: size, file name, declared MIME type, binary signature.
"""

import logging
from dataclasses import dataclass

from ..errors import (
    EmptyFileError,
    FileTooLargeError,
    InvalidFileNameError,
    SignatureMismatchError,
    UnsupportedMediaTypeError,
)
from ..schemas.document import DocumentType

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_FILE_NAME_LENGTH = 255

IMAGE_AND_PDF_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "application/pdf"})

ALLOWED_MIME_TYPES: dict[DocumentType, frozenset[str]] = {
    DocumentType.RECEIPT: IMAGE_AND_PDF_TYPES,
    DocumentType.INVOICE: IMAGE_AND_PDF_TYPES,
    DocumentType.OTHER: IMAGE_AND_PDF_TYPES,
    DocumentType.BANK_STATEMENT: frozenset({"application/pdf"}),
}

# Leading bytes per MIME type
MAGIC_NUMBERS: dict[str, bytes] = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89\x50\x4e\x47",
    "image/webp": b"\x52\x49\x46\x46",
    "application/pdf": b"\x25\x50\x44\x46",
}

FORBIDDEN_NAME_FRAGMENTS = ("..", "/", "\\")


@dataclass
class UploadedFile:
    """A file as received at the upload boundary."""

    data: bytes
    file_name: str
    mime_type: str
    size: int | None = None

    @property
    def byte_size(self) -> int:
        return self.size if self.size is not None else len(self.data)


def validate_upload(
    upload: UploadedFile,
    document_type: DocumentType,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    """
    Validate an upload against size, name, type and signature rules.

    Raises:
        EmptyFileError: Zero bytes
        FileTooLargeError: More than max_bytes
        InvalidFileNameError: Name too long or containing path fragments
        UnsupportedMediaTypeError: MIME type not allowed for document_type
        SignatureMismatchError: Leading bytes do not match the declared type
    """
    size = upload.byte_size
    if size <= 0 or not upload.data:
        raise EmptyFileError("Uploaded file is empty")
    if size > max_bytes or len(upload.data) > max_bytes:
        raise FileTooLargeError(f"File size {size} exceeds limit of {max_bytes} bytes")

    name = upload.file_name or ""
    if not name or len(name) > MAX_FILE_NAME_LENGTH:
        raise InvalidFileNameError(
            f"File name must be 1-{MAX_FILE_NAME_LENGTH} characters"
        )
    if any(fragment in name for fragment in FORBIDDEN_NAME_FRAGMENTS):
        logger.warning("security_event=invalid_file_name file_name=%r", name)
        raise InvalidFileNameError(f"File name contains path characters: {name!r}")

    mime_type = (upload.mime_type or "").lower()
    allowed = ALLOWED_MIME_TYPES.get(document_type, frozenset())
    if mime_type not in allowed:
        raise UnsupportedMediaTypeError(
            f"{mime_type or 'unknown'} is not accepted for {document_type.value} documents"
        )

    signature = MAGIC_NUMBERS[mime_type]
    if not upload.data.startswith(signature):
        raise SignatureMismatchError(f"File content does not match declared type {mime_type}")
