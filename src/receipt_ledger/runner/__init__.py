"""
CLI runner module.

Provides commands:
- upload: Store a document and process it
- process: (Re)process a stored document
- suggestions / approve: Review and commit suggestions
- validate: Plausibility report for an OCR result
- status: Pipeline counters
"""

from .main import build_services, create_cli, main

__all__ = [
    "build_services",
    "create_cli",
    "main",
]
