"""
Filesystem document store.

Stores uploaded document bytes below a single root directory, partitioned
per household. Callers only ever see relative storage tokens of the form
``documents/<household_id>/<uuid4><ext>``; absolute paths never leave
this module.

Key invariants:
- No operation touches a path outside root_dir
- File names are generated here, never taken from the caller
"""

import logging
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..errors import (
    EmptyFileError,
    InvalidIdentifierError,
    NotFoundError,
    PathTraversalError,
)

logger = logging.getLogger(__name__)

HOUSEHOLD_ID_PATTERN = re.compile(r"[a-zA-Z0-9-]+")

# Extension -> MIME type; caller-declared types are never trusted here
MIME_TYPES_BY_EXTENSION = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

TOKEN_PREFIX = "documents"


@dataclass
class FileMetadata:
    """Metadata of a stored document."""

    size: int
    mime_type: str
    last_modified: str  # ISO timestamp

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "mime_type": self.mime_type,
            "last_modified": self.last_modified,
        }


class DocumentStore:
    """
    Path-traversal-safe binary storage for uploaded documents.

    Safe for concurrent writers: every stored file gets an independent
    random name.
    """

    FILE_MODE = 0o600

    def __init__(self, root_dir: Path | str):
        self.root_dir = Path(root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def store(self, data: bytes, household_id: str, file_name: str = "") -> str:
        """
        Persist document bytes.

        Args:
            data: Raw document bytes
            household_id: Owning household (alphanumerics and hyphens only)
            file_name: Original file name; only its extension is kept

        Returns:
            Relative storage token

        Raises:
            EmptyFileError: If data is empty
            InvalidIdentifierError: If household_id has disallowed characters
            PathTraversalError: If the resolved path escapes the root
        """
        if not data:
            raise EmptyFileError("Cannot store an empty document")

        if not household_id or not HOUSEHOLD_ID_PATTERN.fullmatch(household_id):
            logger.warning(
                "security_event=invalid_identifier household_id=%r", household_id
            )
            raise InvalidIdentifierError(f"Invalid household id: {household_id!r}")

        extension = Path(file_name).suffix.lower() if file_name else ""
        if extension and not re.fullmatch(r"\.[a-z0-9]{1,10}", extension):
            extension = ""
        generated_name = f"{uuid.uuid4()}{extension}"

        token = f"{TOKEN_PREFIX}/{household_id}/{generated_name}"
        target = self._resolve(token)

        target.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL, self.FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        logger.debug("Stored %d bytes as %s", len(data), token)
        return token

    def retrieve(self, token: str) -> bytes:
        """
        Read stored document bytes.

        Raises:
            PathTraversalError: If the token is unsafe
            NotFoundError: If nothing readable is stored under the token
        """
        path = self._resolve(token)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, PermissionError) as e:
            raise NotFoundError(f"Document not found: {token}") from e

    def metadata(self, token: str) -> FileMetadata:
        """Size, extension-derived MIME type and modification time of a stored document."""
        path = self._resolve(token)
        try:
            stat = path.stat()
        except FileNotFoundError as e:
            raise NotFoundError(f"Document not found: {token}") from e

        return FileMetadata(
            size=stat.st_size,
            mime_type=MIME_TYPES_BY_EXTENSION.get(path.suffix.lower(), DEFAULT_MIME_TYPE),
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
        )

    def delete(self, token: str) -> None:
        """Remove a stored document. A missing file is not an error; other I/O errors propagate."""
        path = self._resolve(token)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Delete of missing document %s ignored", token)

    def exists(self, token: str) -> bool:
        return self._resolve(token).is_file()

    def _resolve(self, token: str) -> Path:
        """Map a token to an absolute path inside root_dir."""
        if (
            not token
            or ".." in token
            or "~" in token
            or "\\" in token
            or token.startswith("/")
            or os.path.isabs(token)
        ):
            logger.warning("security_event=path_traversal token=%r", token)
            raise PathTraversalError(f"Unsafe storage token: {token!r}")

        path = (self.root_dir / token).resolve()
        if not path.is_relative_to(self.root_dir) or path == self.root_dir:
            logger.warning("security_event=path_traversal token=%r resolved=%s", token, path)
            raise PathTraversalError(f"Storage token escapes root: {token!r}")
        return path
