"""
Document byte storage.
"""

from .document_store import DocumentStore, FileMetadata

__all__ = ["DocumentStore", "FileMetadata"]
